"""Extraction of the platform shared libraries from the natives archives.
"""

from zipfile import ZipFile, BadZipFile
from pathlib import Path
import shutil

from .event import Watcher, NativesErrorEvent, NativesExtractedEvent

from typing import Iterable, List, Optional


NATIVE_SUFFIXES = (".dll", ".so", ".dylib", ".jnilib")


class ArchiveError(Exception):
    """Raised when an archive of native libraries can't be opened or one of its entries
    can't be copied. The archive path is given.
    """
    def __init__(self, path: Path, reason: Exception) -> None:
        super().__init__(path, reason)
        self.path = path
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


def extract_natives(lib_paths: Iterable[Path], natives_dir: Path, watcher: Optional[Watcher] = None) -> List[Path]:
    """Extract the shared libraries of every existing natives archive among the given
    library paths into the natives directory, archives are those with "natives" in their
    file name. A file already present in the directory is never overwritten, the first
    archive providing it wins. An archive that fails is reported to the watcher and the
    other archives are still extracted.

    :return: The list of files newly extracted.
    """

    watcher = watcher or Watcher()
    natives_dir.mkdir(parents=True, exist_ok=True)

    extracted = []
    for lib_path in lib_paths:
        if "natives" in lib_path.name and lib_path.is_file():
            try:
                extracted.extend(extract_archive(lib_path, natives_dir))
            except ArchiveError as error:
                watcher.handle(NativesErrorEvent(lib_path, error))

    watcher.handle(NativesExtractedEvent(len(extracted)))
    return extracted


def extract_archive(archive_path: Path, natives_dir: Path) -> List[Path]:
    """Copy the shared libraries of a single archive, flattened to their base name.

    :raises ArchiveError: If the archive can't be read or an entry can't be copied.
    """

    extracted = []
    try:
        with ZipFile(archive_path, "r") as native_zip:
            for native_zip_info in native_zip.infolist():

                native_name = native_zip_info.filename
                if native_zip_info.is_dir() or not native_name.endswith(NATIVE_SUFFIXES):
                    continue

                native_name = native_name[native_name.rfind("/") + 1:]
                dst_file = natives_dir / native_name
                if dst_file.exists():
                    continue

                try:
                    with native_zip.open(native_zip_info, "r") as src_fp:
                        with dst_file.open("wb") as dst_fp:
                            shutil.copyfileobj(src_fp, dst_fp)
                except (BadZipFile, OSError):
                    # Never keep a partial file, it would never be replaced.
                    try:
                        dst_file.unlink()
                    except FileNotFoundError:
                        pass
                    raise

                extracted.append(dst_file)

    except (BadZipFile, OSError) as error:
        raise ArchiveError(archive_path, error)

    return extracted
