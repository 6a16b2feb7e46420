"""Construction of the command line running the game, from the version descriptor, the
resolved files and the player's identity.
"""

from subprocess import Popen, PIPE, STDOUT, TimeoutExpired
from pathlib import Path
import os
import re

from .manifest import VersionDescriptor
from .auth import LaunchIdentity
from .context import Context
from .util import replace_vars, current_os, jvm_bin_filename

from typing import List, Optional, Sequence, Tuple


# Ordered main class selection for descriptors that don't declare one.
MAIN_CLASS_TABLE: List[Tuple[Tuple[str, ...], str]] = [
    (("a1.", "b1.", "c0."), "net.minecraft.launchwrapper.Launch"),
]
DEFAULT_MAIN_CLASS = "net.minecraft.client.main.Minecraft"

DEFAULT_JVM_ARGS = ["-Xmx2G", "-Xms512M"]

# Asset index name given to versions whose descriptor references none.
LEGACY_ASSET_INDEX = "legacy"

# From this Java major version, the JVM warns about restricted native access.
NATIVE_ACCESS_MIN_MAJOR = 21

_JAVA_VERSION_RE = re.compile(r"version\s+\"([^\"]+)\"|^(?:openjdk|java)\s+(\d[\w.\-+]*)", re.MULTILINE)


def select_main_class(descriptor: VersionDescriptor) -> str:
    """Return the main class declared by the descriptor, or the one selected from the
    version identifier if not declared.
    """
    if descriptor.main_class is not None:
        return descriptor.main_class
    for prefixes, main_class in MAIN_CLASS_TABLE:
        if descriptor.id.startswith(prefixes):
            return main_class
    return DEFAULT_MAIN_CLASS


def parse_java_major(version: str) -> Optional[int]:
    """Parse the major version of a Java version string, like "1.8.0_392" (8) or
    "21.0.1" (21). Return none if the version can't be understood.
    """
    parts = re.split(r"[^0-9]+", version.strip())
    if not len(parts) or not parts[0]:
        return None
    major = int(parts[0])
    if major == 1 and len(parts) > 1 and parts[1]:
        major = int(parts[1])
    return major


def detect_java_major(jvm_path: str = jvm_bin_filename, *, timeout: float = 5.0) -> Optional[int]:
    """Run the given Java executable with `-version` and parse its major version from
    the output. Return none if the executable can't be run or its output is not
    understood.
    """

    try:
        process = Popen([jvm_path, "-version"], bufsize=1, stdout=PIPE, stderr=STDOUT, universal_newlines=True)
    except OSError:
        return None

    try:
        stdout, _stderr = process.communicate(timeout=timeout)
    except TimeoutExpired:
        process.kill()
        process.communicate()
        return None

    match = _JAVA_VERSION_RE.search(stdout or "")
    if match is None:
        return None
    return parse_java_major(match.group(1) or match.group(2))


class LaunchCommand:
    """A fully resolved command line, split into its executable, JVM arguments, main class
    and game arguments.
    """

    __slots__ = "jvm_path", "jvm_args", "main_class", "game_args"

    def __init__(self, jvm_path: str, jvm_args: List[str], main_class: str, game_args: List[str]) -> None:
        self.jvm_path = jvm_path
        self.jvm_args = jvm_args
        self.main_class = main_class
        self.game_args = game_args

    def args(self) -> List[str]:
        """Return the complete argument vector, the executable being the first argument.
        """
        return [self.jvm_path, *self.jvm_args, self.main_class, *self.game_args]

    def __str__(self) -> str:
        return " ".join(self.args())


def build_command(
    descriptor: VersionDescriptor,
    context: Context,
    identity: LaunchIdentity,
    lib_paths: Sequence[Path],
    jar_path: Path,
    natives_dir: Path, *,
    jvm_path: str = jvm_bin_filename,
    jvm_args: Optional[List[str]] = None,
    java_major: Optional[int] = None,
    os_name: str = current_os
) -> LaunchCommand:
    """Build the command running the given version.

    :param lib_paths: Resolved library paths, those missing from disk are not included
    in the class path.
    :param jvm_args: Memory and other user JVM arguments, `DEFAULT_JVM_ARGS` if none.
    :param java_major: The major version of the Java runtime, if known. The native access
    flag is only given to runtimes known to need it.
    """

    full_jvm_args = []
    if os_name == "osx":
        full_jvm_args.append("-XstartOnFirstThread")
    if java_major is not None and java_major >= NATIVE_ACCESS_MIN_MAJOR:
        full_jvm_args.append("--enable-native-access=ALL-UNNAMED")

    full_jvm_args.extend(DEFAULT_JVM_ARGS if jvm_args is None else jvm_args)
    full_jvm_args.append(f"-Djava.library.path={natives_dir.absolute()}")
    full_jvm_args.append("-cp")
    full_jvm_args.append(build_class_path(lib_paths, jar_path))

    game_dir = str(context.work_dir.absolute())
    assets_root = str(context.assets_dir.absolute())
    assets_index = descriptor.asset_index.id if descriptor.asset_index is not None else LEGACY_ASSET_INDEX

    if descriptor.minecraft_arguments is not None:
        # Split before replacing, so that values containing spaces are kept whole.
        replacements = {
            "auth_player_name": identity.username,
            "version_name": descriptor.id,
            "game_directory": game_dir,
            "assets_root": assets_root,
            "assets_index_name": assets_index,
            "auth_uuid": identity.uuid,
            "auth_access_token": identity.access_token,
            "user_properties": "{}",
            "user_type": identity.user_type,
        }
        game_args = [replace_vars(arg, replacements) for arg in descriptor.minecraft_arguments.split()]
    else:
        game_args = [
            "--username", identity.username,
            "--version", descriptor.id,
            "--gameDir", game_dir,
            "--assetsDir", assets_root,
            "--assetIndex", assets_index,
            "--uuid", identity.uuid,
            "--accessToken", identity.access_token,
            "--userType", identity.user_type,
            "--versionType", "release",
        ]

    return LaunchCommand(jvm_path, full_jvm_args, select_main_class(descriptor), game_args)


def build_class_path(lib_paths: Sequence[Path], jar_path: Path) -> str:
    """Join the existing library paths followed by the client JAR path.
    """
    class_path = [str(path.absolute()) for path in lib_paths if path.exists()]
    class_path.append(str(jar_path.absolute()))
    return os.pathsep.join(class_path)
