"""Path utilities: model-returned path cleanup, archive naming, containment."""

import os


def sanitize_path(path):
    """Clean a relative path returned by the model.

    Backslashes become forward slashes, and empty and "." segments are
    dropped. Any ".." segment makes the whole path invalid. Returns "" for
    invalid input; callers check for emptiness.
    """
    if not path:
        return ""
    parts = path.strip().replace("\\", "/").split("/")
    if any(p.strip() == ".." for p in parts):
        return ""
    return "/".join(p for p in parts if p and p != ".")


def fixed_archive_name(original_name):
    """Return the download name for a repaired archive: foo.zip -> foo-fixed.zip."""
    base = os.path.basename(original_name or "") or "project"
    if base.lower().endswith(".zip"):
        base = base[:-4]
    return f"{base}-fixed.zip"


def safe_output_path(output_dir, name):
    """Join name onto output_dir, refusing paths that escape it."""
    full_path = os.path.join(output_dir, name)
    resolved = os.path.realpath(full_path)
    if not resolved.startswith(os.path.realpath(output_dir) + os.sep):
        raise ValueError(f"Path escapes output directory: {name}")
    return resolved
