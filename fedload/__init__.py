"""fedload - federated package resolution.

Resolves ``import X`` in two stages over a stack of environments: what ``X``
means in the importing context (an identity), then where that identity's
source lives (an entry point). Loads happen at most once per identity.

Public API:
- Resolver: resolve / locate / load
- EnvironmentStack: first-wins overlay of environments
- ManifestEnvironment, DirectoryEnvironment: the two environment kinds
- LoadCache: single-flight load tracking
- LoaderSettings, build_stack, create_resolver: configuration
- slug: content-addressed storage slug
"""

__version__ = "0.1.0"

from .config import LoaderSettings
from .config import parse_path_list
from .content_address import HashFunction
from .content_address import content_slug
from .content_address import slug
from .content_address import tree_hash
from .environments import DirectoryEnvironment
from .environments import Environment
from .environments import ManifestEnvironment
from .errors import ConfigError
from .errors import FedloadError
from .errors import LoadCacheContractError
from .errors import LoadError
from .errors import NoLoadPath
from .errors import ParseError
from .errors import ResolutionError
from .errors import UnknownImport
from .identity import NIL_IDENTITY
from .identity import Identity
from .identity import PackageId
from .identity import path_identity
from .load_cache import CacheState
from .load_cache import LoadCache
from .loaders import SourceFileLoader
from .paths import build_stack
from .paths import create_resolver
from .records import ManifestRecord
from .records import ProjectRecord
from .records import parse_manifest
from .records import parse_project
from .resolver import Resolver
from .stack import EnvironmentStack

__all__ = [
    "__version__",
    "CacheState",
    "ConfigError",
    "DirectoryEnvironment",
    "Environment",
    "EnvironmentStack",
    "FedloadError",
    "HashFunction",
    "Identity",
    "LoadCache",
    "LoadCacheContractError",
    "LoadError",
    "LoaderSettings",
    "ManifestEnvironment",
    "ManifestRecord",
    "NIL_IDENTITY",
    "NoLoadPath",
    "PackageId",
    "ParseError",
    "ProjectRecord",
    "ResolutionError",
    "Resolver",
    "SourceFileLoader",
    "UnknownImport",
    "build_stack",
    "content_slug",
    "create_resolver",
    "parse_manifest",
    "parse_path_list",
    "parse_project",
    "path_identity",
    "slug",
    "tree_hash",
]
