"""Zip archive reading and writing for uploaded projects."""

import io
import logging
import zipfile

from config.defaults import DEFAULTS
from core.errors import DeployerError, ErrorKind
from utils.paths import sanitize_path

logger = logging.getLogger(__name__)

_MISSING_CONFIG_MESSAGE = (
    "The `{name}` configuration file is missing. This file is essential for "
    "determining the project's run command and language environment. Please "
    "ensure you've uploaded a valid project zip from Replit."
)


def find_root_dir(names):
    """Return the single top-level folder shared by every entry, e.g. "my-project/".

    Zips exported from Replit usually wrap everything in one folder. Returns
    "" when files sit at the archive root or entries disagree.
    """
    first_file = next((n for n in names if not n.endswith("/")), None)
    if not first_file:
        return ""
    parts = first_file.split("/")
    if len(parts) <= 1:
        return ""
    root = parts[0] + "/"
    for name in names:
        if not name.startswith(root):
            return ""
    return root


def read_archive(data):
    """Extract a zip into a flat {relative_path: text} mapping.

    Directories, node_modules/ and files that are not valid UTF-8 are left
    out. Raises DeployerError if the archive is unreadable or has no .replit.
    """
    required = DEFAULTS["required_config"]
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise DeployerError(
            f"The uploaded file is not a valid zip archive: {e}",
            ErrorKind.PRECONDITION_MISSING,
        ) from e

    files = {}
    with zf:
        infos = zf.infolist()
        root = find_root_dir([i.filename for i in infos])

        for info in infos:
            if info.is_dir():
                continue
            clean = info.filename[len(root):]
            if not clean or clean == "." or clean.endswith("/"):
                continue
            if clean.startswith("node_modules/"):
                continue
            path = sanitize_path(clean)
            if not path:
                logger.warning("Skipping archive entry with unsafe path: %s", info.filename)
                continue
            try:
                files[path] = zf.read(info).decode("utf-8")
            except UnicodeDecodeError:
                logger.debug("Skipping non-text file: %s", path)

    if required not in files:
        raise DeployerError(
            _MISSING_CONFIG_MESSAGE.format(name=required),
            ErrorKind.PRECONDITION_MISSING,
        )

    logger.info("Extracted and read %d text files", len(files))
    return files


def archive_files(files, render_yaml):
    """Return the files to package, with the manifest injected under its fixed name."""
    packaged = dict(files)
    packaged[DEFAULTS["manifest_name"]] = render_yaml
    return packaged


def write_archive(files):
    """Package a {path: text} mapping into zip bytes."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for path, content in files.items():
            zf.writestr(path, content)
    return buf.getvalue()
