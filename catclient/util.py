"""Global utilities used internally. The functions can be used externally but upward
compatibility is not guaranteed unless explicitly specified.
"""

from pathlib import Path
import platform
import re

from typing import Dict, Optional


jvm_bin_filename = "javaw.exe" if platform.system() == "Windows" else "java"

# Name of the OS has used in the version descriptors' rules and native classifiers,
# unknown systems are considered linux-like.
current_os = {
    "Windows": "windows",
    "Darwin": "osx",
}.get(platform.system(), "linux")

# Stores the bits length of pointers on the current system.
current_arch_bits: Optional[int] = {
    "64bit": 64,
    "32bit": 32
}.get(platform.architecture()[0])


_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def replace_vars(text: str, replacements: Dict[str, str]) -> str:
    """Replace all variables of the form `${foo}` in a string. Variables missing from the
    replacements are kept as-is.
    """
    return _VAR_RE.sub(lambda m: replacements.get(m.group(1), m.group(0)), text)


def get_main_dir() -> Path:
    """Internal function to get the default directory for installing and running the
    game.
    """
    home = Path.home()
    return {
        "Windows": home.joinpath("AppData", "Roaming", ".catclient"),
        "Darwin": home.joinpath("Library", "Application Support", "catclient"),
    }.get(platform.system(), home / ".catclient")
