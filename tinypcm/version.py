"""Library version numbers."""

VERSION_MAJOR = 2
VERSION_MINOR = 0
VERSION_PATCH = 0


def version_number(
    major: int = VERSION_MAJOR, minor: int = VERSION_MINOR, patch: int = VERSION_PATCH
) -> int:
    """Pack a version into one integer: major, minor and patch a byte apart."""
    return (major << 16) | (minor << 8) | patch


def version_string(
    major: int = VERSION_MAJOR, minor: int = VERSION_MINOR, patch: int = VERSION_PATCH
) -> str:
    """Return the dotted form of a version."""
    return f"{major}.{minor}.{patch}"


VERSION = version_number()
VERSION_STRING = version_string()