"""Environment implementations.

- ManifestEnvironment: explicit project + manifest files
- DirectoryEnvironment: implicit, a directory of package source trees
"""

from .base import Environment
from .directory import Candidate
from .directory import DirectoryEnvironment
from .manifest import MANIFEST_FILE_NAMES
from .manifest import PROJECT_FILE_NAMES
from .manifest import ManifestEnvironment
from .manifest import find_project_file

__all__ = [
    "Environment",
    "Candidate",
    "DirectoryEnvironment",
    "ManifestEnvironment",
    "PROJECT_FILE_NAMES",
    "MANIFEST_FILE_NAMES",
    "find_project_file",
]
