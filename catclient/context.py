"""Definition of the installation context, the directory layout shared by every stage.
"""

from pathlib import Path

from .util import get_main_dir

from typing import Iterator, Optional


class Context:
    """Context of the game's installation and runtime. This defines various directories
    where versions, assets, libraries and extracted natives are stored, and also a working
    directory from where the game will run.
    """

    def __init__(self,
        main_dir: Optional[Path] = None,
        work_dir: Optional[Path] = None
    ) -> None:
        """Construct an installation context.

        Note that these paths can perfectly be relative paths, they are computed to
        absolute paths when needed, so you don't have to care. By default they will be
        resolved relatively to the current working directory (of the executing Python
        program).

        :param main_dir: The main directory where versions, assets, libraries and natives
        are installed. If not specified this path is set to the OS-dependent default, see
        `catclient.util.get_main_dir`.
        :param work_dir: The working directory from where the game is run, this defaults
        to `main_dir` if not specified.
        """

        main_dir = get_main_dir() if main_dir is None else main_dir
        self.main_dir = main_dir
        self.work_dir = main_dir if work_dir is None else work_dir
        self.versions_dir = main_dir / "versions"
        self.assets_dir = main_dir / "assets"
        self.libraries_dir = main_dir / "libraries"
        self.natives_dir = main_dir / "natives"

    @property
    def assets_indexes_dir(self) -> Path:
        return self.assets_dir / "indexes"

    @property
    def assets_objects_dir(self) -> Path:
        return self.assets_dir / "objects"

    def get_version(self, version: str) -> "VersionHandle":
        """Get a version's handle.
        """
        return VersionHandle(version, self.versions_dir / version)

    def list_versions(self) -> "Iterator[VersionHandle]":
        """List installed versions given their handles.
        """
        if self.versions_dir.is_dir():
            for version_dir in self.versions_dir.iterdir():
                if version_dir.is_dir():
                    version = VersionHandle(version_dir.name, version_dir)
                    if version.descriptor_exists():
                        yield version

    def get_natives_dir(self, version: str) -> Path:
        """Get the directory where native libraries of the given version are extracted.
        This directory isn't created by this method.
        """
        return self.natives_dir / version

    def asset_object_file(self, asset_hash: str) -> Path:
        """Get the path of an asset object, fully determined by its hash.
        """
        return self.assets_objects_dir / asset_hash[:2] / asset_hash


class VersionHandle:
    """Paths of a version's files inside the versions directory.
    """

    __slots__ = "id", "dir"

    def __init__(self, id: str, dir: Path) -> None:
        self.id = id
        self.dir = dir

    def descriptor_file(self) -> Path:
        """This function returns the computed path of the descriptor file.
        """
        return self.dir / f"{self.id}.json"

    def descriptor_exists(self) -> bool:
        return self.descriptor_file().is_file()

    def jar_file(self) -> Path:
        """This function returns the computed path of the JAR file of the game.
        """
        return self.dir / f"{self.id}.jar"

    def __str__(self) -> str:
        return self.id

    def __repr__(self) -> str:
        return f"<VersionHandle {self.id}>"
