"""provisio - a declarative resource reconciliation engine with tracked state."""

from .blueprints import Blueprint as Blueprint
from .blueprints import Declaration as Declaration
from .context import Context as Context
from .context import Phase as Phase
from .context import RunPhase as RunPhase
from .errors import DestroyError as DestroyError
from .errors import DuplicateIdError as DuplicateIdError
from .errors import DuplicateTypeError as DuplicateTypeError
from .errors import HandlerFailure as HandlerFailure
from .errors import InvalidContextUseError as InvalidContextUseError
from .errors import ProvisioError as ProvisioError
from .errors import ScopeError as ScopeError
from .errors import UnknownTypeError as UnknownTypeError
from .resource import Registry as Registry
from .resource import Resource as Resource
from .resource import define as define
from .resource import resource as resource
from .driver import destroy as destroy
from .driver import run as run
from .driver import up as up
from .scope import Scope as Scope
from .stacks import Stack as Stack
from .state import FileStateStore as FileStateStore
from .state import MemoryStateStore as MemoryStateStore
from .state import StateRecord as StateRecord
from .state import StateStore as StateStore
from .workspace import Workspace as Workspace
