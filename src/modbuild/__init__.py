"""modbuild - Build, analyze, test, document and deploy script modules from CI."""

from .context import BuildContext as BuildContext
from .context import CiEngine as CiEngine
from .errors import BuildError as BuildError
from .errors import FatalDependencyError as FatalDependencyError
from .errors import TaskFailure as TaskFailure
from .pipeline import PIPELINES as PIPELINES
from .pipeline import Pipeline as Pipeline
from .pipeline import get_pipeline as get_pipeline
from .project import Dependency as Dependency
from .project import ModuleProject as ModuleProject
from .project import ToolCommand as ToolCommand
from .task import Task as Task
from .task import task as task
