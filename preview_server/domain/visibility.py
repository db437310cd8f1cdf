"""Hidden-file detection based on the leading-dot naming convention."""


def is_hidden(name: str) -> bool:
    """Return True when a file or directory name starts with a dot."""
    return name.startswith(".")


def path_contains_hidden(path: str) -> bool:
    """Return True when any segment of a slash-separated path is hidden.

    Detection is lexical: ``.`` and ``..`` segments count as hidden too.
    """
    return any(is_hidden(segment) for segment in path.split("/") if segment)
