"""File selection rules for assembling analysis prompts.

Priority files are well-known manifests and configs that describe how a
project builds and runs. They are offered to the model first, in this order.
"""

import re

PRIORITY_FILES = [
    ".replit",
    "package.json",
    "render.yaml",
    "pyproject.toml",
    "requirements.txt",
    "go.mod",
    "next.config.js",
    "vite.config.js",
    "svelte.config.js",
    "package-lock.json",
    "yarn.lock",
]

# Extensions worth sending after the priority files
SOURCE_FILE_RE = re.compile(
    r"\.(js|ts|jsx|tsx|py|go|html|css|scss|sh|svelte|vue|rb|json)$",
    re.IGNORECASE,
)

# Build output, dependency trees, tests and boilerplate docs
EXCLUDED_FILE_RE = re.compile(
    r"^(node_modules|dist|build|out|coverage)/|\.(test|spec)\.|(LICENSE|README\.md)$",
    re.IGNORECASE,
)


def is_source_candidate(path):
    """Return True if path is a source-like file that may fill leftover budget."""
    return bool(SOURCE_FILE_RE.search(path)) and not EXCLUDED_FILE_RE.search(path)
