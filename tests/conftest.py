"""Shared fixtures: real project, manifest, depot and package-directory trees."""

from pathlib import Path
from textwrap import dedent
from uuid import UUID

import pytest

from fedload.content_address import slug

APP = UUID("8f986787-14fe-4607-ba5d-fbff2944afa9")
PRIV_PRIVATE = UUID("ba13f791-ae1d-465a-978b-69c3ad90f72b")
PRIV_PUBLIC = UUID("2d15fe94-a1f7-436c-a4d8-07a9a496e01c")
PUB = UUID("c07ecb7d-0dc9-4db7-8803-fadaaeaf08e1")
ZEBRA = UUID("f7a24cb4-21fc-4002-ac70-f0e3a0dd3f62")

PRIV_PUBLIC_HASH = "1bf63d3be994fe83456a03b874b409cfd59a6373"
PUB_HASH = "9ebd50e2b0dd1e110e842df3b433cb5869b0dd38"
ZEBRA_HASH = "e808e36a5d7173974b90a15a353b564f3494092f"

COBRA = UUID("4725e24d-f727-424b-bca0-c4307a3456fa")
DINGO = UUID("7a7925be-828c-4418-bbeb-bac8dfc843bc")


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(text))
    return path


def install(depot: Path, name: str, identity: UUID, content_hash: str, body: str = "") -> Path:
    """Install a package into a depot the way a package manager would."""
    root = depot / "packages" / name / slug(identity, content_hash)
    write(root / "src" / f"{name}.py", body or f"NAME = {name!r}\n")
    return root


APP_PROJECT = f"""
    name = "App"
    uuid = "{APP}"

    [deps]
    Priv = "{PRIV_PRIVATE}"
    Pub  = "{PUB}"
"""

APP_MANIFEST = f"""
    [[Priv]] # the private one
    deps = ["Pub", "Zebra"]
    uuid = "{PRIV_PRIVATE}"
    path = "deps/Priv"

    [[Priv]] # the public one
    uuid = "{PRIV_PUBLIC}"
    git-tree-sha1 = "{PRIV_PUBLIC_HASH}"
    version = "0.1.5"

    [[Pub]]
    uuid = "{PUB}"
    git-tree-sha1 = "{PUB_HASH}"
    version = "2.1.4"

      [Pub.deps]
      Priv = "{PRIV_PUBLIC}"
      Zebra = "{ZEBRA}"

    [[Zebra]]
    uuid = "{ZEBRA}"
    git-tree-sha1 = "{ZEBRA_HASH}"
    version = "3.4.2"
"""


@pytest.fixture
def app_tree(tmp_path: Path) -> dict[str, Path]:
    """
    The App project with two packages named Priv.

    Creates:
    - project/Project.toml, project/Manifest.toml
    - project/src/App.py
    - project/deps/Priv/src/Priv.py          (private Priv, vendored)
    - user-depot/packages/Pub/<slug>          (Pub)
    - system-depot/packages/Priv/<slug>       (public Priv)
    - system-depot/packages/Zebra/<slug>      (Zebra)
    """
    project = tmp_path / "project"
    write(project / "Project.toml", APP_PROJECT)
    write(project / "Manifest.toml", APP_MANIFEST)
    write(project / "src" / "App.py", "NAME = 'App'\n")
    write(project / "deps" / "Priv" / "src" / "Priv.py", "NAME = 'Priv'\nKIND = 'private'\n")

    user_depot = tmp_path / "user-depot"
    system_depot = tmp_path / "system-depot"
    install(user_depot, "Pub", PUB, PUB_HASH)
    install(system_depot, "Priv", PRIV_PUBLIC, PRIV_PUBLIC_HASH, "NAME = 'Priv'\nKIND = 'public'\n")
    install(system_depot, "Zebra", ZEBRA, ZEBRA_HASH)

    return {
        "root": tmp_path,
        "project": project,
        "project_file": project / "Project.toml",
        "user_depot": user_depot,
        "system_depot": system_depot,
    }


@pytest.fixture
def animals(tmp_path: Path) -> Path:
    """
    A package directory with the four project-file situations.

    - Aardvark: no project file
    - Bobcat: project file without uuid
    - Cobra, Dingo: project files with uuid
    """
    root = tmp_path / "animals"
    write(root / "Aardvark" / "src" / "Aardvark.py", "import_names = ['Bobcat', 'Cobra']\n")

    write(
        root / "Bobcat" / "Project.toml",
        f"""
        [deps]
        Cobra = "{COBRA}"
        Dingo = "{DINGO}"
        """,
    )
    write(root / "Bobcat" / "src" / "Bobcat.py", "")

    write(
        root / "Cobra" / "Project.toml",
        f"""
        uuid = "{COBRA}"
        [deps]
        Dingo = "{DINGO}"
        """,
    )
    write(root / "Cobra" / "src" / "Cobra.py", "")

    write(root / "Dingo" / "Project.toml", f'uuid = "{DINGO}"\n')
    write(root / "Dingo" / "src" / "Dingo.py", "")
    return root
