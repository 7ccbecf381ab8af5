"""
Checks and resolution for host and container paths.
"""
import os
from typing import Optional


def check_absolute_path(path: str) -> str:
    """
    Returns the path unchanged if it is a well-formed absolute POSIX path.

    Well-formed means: starts with '/', has no '..' segment, no empty
    segment other than a trailing slash, and no NUL byte.

    :raises ValueError: Describing the first problem found.
    """
    if not isinstance(path, str) or not path:
        raise ValueError("path must be a non-empty string")
    if "\x00" in path:
        raise ValueError(f"path {path!r} contains a NUL byte")
    if not path.startswith("/"):
        raise ValueError(f"path {path!r} is not absolute")
    segments = path.rstrip("/").split("/")[1:] if path != "/" else []
    for segment in segments:
        if segment == "":
            raise ValueError(f"path {path!r} contains an empty segment")
        if segment == "..":
            raise ValueError(f"path {path!r} contains a '..' segment")
    return path


def resolve_host_path(source: str, base_dir: Optional[str] = None) -> str:
    """
    Resolves a relative bind source the way compose does.

    './x' and '../x' are taken relative to base_dir (the compose file's
    directory), '~' and '~/x' relative to the user's home. Absolute and
    bare-name sources are returned unchanged.

    :param source: Source as written in the compose file.
    :param base_dir: Directory relative sources are resolved against.
    :return: The resolved source.
    """
    if source == "~" or source.startswith("~/"):
        return os.path.normpath(os.path.expanduser(source))
    if source in (".", "..") or source.startswith("./") or source.startswith("../"):
        root = os.path.abspath(base_dir or os.getcwd())
        return os.path.normpath(os.path.join(root, source))
    return source
