"""Input Guard - filename extension and declared MIME type allow-lists.

Cheap pre-filter that runs before the cache and before any tool. It never
looks at document content.
"""

from typing import Optional

from yamlcheck.errors import InvalidExtension, InvalidMimeType

YAML_EXTENSIONS = (".yaml", ".yml")

YAML_MIME_TYPES = frozenset({
    "application/yaml",
    "application/x-yaml",
    "text/yaml",
    "text/x-yaml",
    "text/vnd.yaml",
    "application/vnd.yaml",
})

DEFAULT_YAML_MIME = "application/yaml"


def has_yaml_extension(filename: Optional[str]) -> bool:
    """True if the filename ends in .yaml or .yml (any case)."""
    if not filename:
        return False
    # Plain suffix match: a file named ".yaml" counts
    return filename.lower().endswith(YAML_EXTENSIONS)


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Lowercase and strip parameters: 'Text/YAML; charset=utf-8' → 'text/yaml'."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def infer_mime_type(filename: str) -> Optional[str]:
    """MIME type implied by the extension, for files with no declared type."""
    return DEFAULT_YAML_MIME if has_yaml_extension(filename) else None


def check_input(filename: Optional[str], mime_type: Optional[str]) -> None:
    """Raise a GuardRejection if the filename or MIME type is not allowed.

    Extension is checked first, so a request failing both reports the
    extension problem.
    """
    if not has_yaml_extension(filename):
        raise InvalidExtension(
            f"Unsupported file extension for {filename or '<unnamed>'}. Only .yaml/.yml allowed"
        )
    if normalize_mime_type(mime_type) not in YAML_MIME_TYPES:
        raise InvalidMimeType(f"Unsupported MIME type {mime_type or '<none>'}.")


REJECTION_SUGGESTIONS = {
    InvalidExtension: "Rename the file to .yaml or .yml",
    InvalidMimeType: "Use application/yaml or text/yaml",
}
