import logging
import os
import shutil
import tempfile
import zipfile
from collections import defaultdict
from typing import Dict, Optional, Set

from Application.helpers.cancellation import CancelToken
from Application.helpers.exceptions import ArchiveError
from Entities.shapefile_entity import REQUIRED_EXTENSIONS

logger = logging.getLogger(__name__)

_COPY_CHUNK = 64 * 1024


def _basename(entry_name: str) -> str:
    # zip entries use "/" but windows tools sometimes write "\"
    return entry_name.replace("\\", "/").rsplit("/", 1)[-1]


def flatten_zip(path: str, cancel_token: Optional[CancelToken] = None) -> None:
    """
    Rewrite the archive at ``path`` so every entry sits at the top level.

    Directory entries are dropped and each file keeps only its basename. When
    two entries collapse to the same name the later one wins. The rewrite goes
    to a sibling temp file that replaces the original only once it is complete,
    so a failure or cancellation leaves the original archive untouched.
    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix=os.path.basename(path) + ".flatten.", dir=directory)
    os.close(fd)
    try:
        with zipfile.ZipFile(path, "r") as src:
            latest: Dict[str, zipfile.ZipInfo] = {}
            for info in src.infolist():
                if info.is_dir():
                    continue
                name = _basename(info.filename)
                if not name:
                    continue
                # pop first so the surviving entry keeps the later position
                latest.pop(name, None)
                latest[name] = info

            with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as dst:
                for name, info in latest.items():
                    if cancel_token is not None:
                        cancel_token.raise_if_cancelled()
                    target = zipfile.ZipInfo(name, date_time=info.date_time)
                    target.compress_type = info.compress_type
                    target.external_attr = info.external_attr
                    # lets zipfile pick zip64 for large members up front
                    target.file_size = info.file_size
                    with src.open(info, "r") as reader, dst.open(target, "w") as writer:
                        shutil.copyfileobj(reader, writer, _COPY_CHUNK)

        os.replace(tmp_path, path)
        logger.debug("Flattened %s into %d top-level entries", path, len(latest))
    except (zipfile.BadZipFile, RuntimeError, OSError) as ex:
        raise ArchiveError(f"Unable to flatten zip file: {ex}") from ex
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def validate_shapefile_zip(path: str) -> str:
    """Return the base name shared by the .shp/.shx/.dbf/.prj members."""
    try:
        with zipfile.ZipFile(path, "r") as zf:
            names = [info.filename for info in zf.infolist() if not info.is_dir()]
    except (zipfile.BadZipFile, RuntimeError, OSError) as ex:
        raise ArchiveError(f"Unable to verify shapefile. Upload failed. ({ex})") from ex

    by_base: Dict[str, Set[str]] = defaultdict(set)
    for name in names:
        if "/" in name or "\\" in name:
            # only top-level members count
            continue
        base, ext = os.path.splitext(name)
        ext = ext.lower()
        if ext in REQUIRED_EXTENSIONS:
            by_base[base].add(ext)

    complete = [base for base, exts in by_base.items() if len(exts) == len(REQUIRED_EXTENSIONS)]
    if len(complete) != 1:
        logger.info("Shapefile check failed for %s: members=%s", path, names)
        raise ArchiveError("Unable to verify shapefile. Upload failed.")
    return complete[0]
