"""Path classification rules for project files.

Decides which files are eligible for upload and analysis, independent of any
ignore-file contents. Exclusion always takes precedence over inclusion.
"""

import re

from ..utils import normalize_path

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {
        # JavaScript / TypeScript
        "js", "jsx", "ts", "tsx", "cjs", "mjs", "vue", "svelte", "astro",
        # Markup, styles and data
        "json", "md", "txt", "css", "scss", "html", "yml", "yaml", "xml",
        "csv", "toml", "ini", "ipynb",
        # Languages
        "py", "java", "go", "rb", "php", "sh", "bat", "pl", "swift", "rs",
        "cpp", "h", "hpp", "c", "cs", "vb", "fs", "kt", "dart", "scala",
        "sql", "r", "jl", "asm",
        # Build and tool configuration
        "dockerfile", "env", "tsconfig", "eslintrc", "prettierrc",
        "gitignore", "lock", "sln", "props", "targets", "gradle",
        "makefile", "mk", "cmake",
    }
)  # fmt: skip

EXCLUDED_NAMES: frozenset[str] = frozenset(
    {
        # Dependency, output and cache directories
        "node_modules", "dist", "build", "coverage", "out", "tmp", "temp",
        # Project metadata files
        "readme.md", "package.json", "package-lock.json", "tsconfig.json",
        "commitlint.config.json",
    }
)  # fmt: skip

_EXCLUDED_PREFIXES: tuple[str, ...] = ("tsconfig.",)

_EXTENSION_RE = re.compile(r"\.([^./]+)$")


def get_extension(path: str) -> str:
    """Return the lower-cased extension of a path without the dot.

    Examples:
        >>> get_extension("src/App.TSX")
        'tsx'
        >>> get_extension("Makefile")
        ''
    """
    match = _EXTENSION_RE.search(normalize_path(path))
    return match.group(1).lower() if match else ""


def is_supported_code_file(path: str) -> bool:
    """Check whether a file has a recognized source, text or config extension.

    Examples:
        >>> is_supported_code_file("foo.ts")
        True
        >>> is_supported_code_file("foo.exe")
        False
    """
    return get_extension(path) in SUPPORTED_EXTENSIONS


is_includable_extension = is_supported_code_file


def is_excluded_segment(segment: str) -> bool:
    """Check a single path segment against the deny-list.

    Every dot-prefixed name (``.git``, ``.vscode``, ``.env.local`` ...) is
    excluded.
    """
    name = segment.lower()
    if not name or name in (".", ".."):
        return False
    if name.startswith("."):
        return True
    if name in EXCLUDED_NAMES:
        return True
    return name.startswith(_EXCLUDED_PREFIXES)


def is_excluded_path(path: str) -> bool:
    """Check whether any segment of a path is on the deny-list.

    Examples:
        >>> is_excluded_path("node_modules/foo.js")
        True
        >>> is_excluded_path("src/app.ts")
        False
        >>> is_excluded_path("src/.env.local")
        True
    """
    return any(is_excluded_segment(part) for part in normalize_path(path).split("/"))


def is_eligible_file(path: str) -> bool:
    """Check whether a file passes both classifier rules."""
    return not is_excluded_path(path) and is_supported_code_file(path)
