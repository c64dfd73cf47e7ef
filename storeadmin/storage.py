# storeadmin/storage.py

"""
Object storage for category and product images.

The hosted backend exposes buckets whose public URLs look like
    <base>/object/public/<bucket>/<object name>
LocalBucket keeps the same URL scheme on top of a directory, so image URLs
stored in the tables can be mapped back to an object path for removal.
"""

import logging
import os
import random
import string
import time
from typing import Iterable, List, Optional

from storeadmin.errors import StorageError, UploadFailed

logger = logging.getLogger(__name__)


def new_object_name(filename: str) -> str:
    """<epoch ms>-<6 random chars>.<original extension>"""
    ext = filename.rsplit(".", 1)[-1] if "." in filename else "bin"
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{int(time.time() * 1000)}-{suffix}.{ext}"


class LocalBucket:
    def __init__(self, root: str, public_base_url: str, bucket: str = "storeadmin"):
        self.bucket = bucket
        self.root = os.path.join(root, bucket)
        self.public_base_url = public_base_url.rstrip("/")
        os.makedirs(self.root, exist_ok=True)

    @property
    def public_prefix(self) -> str:
        return f"/object/public/{self.bucket}/"

    def _path(self, name: str) -> str:
        path = os.path.abspath(os.path.join(self.root, name))
        if not path.startswith(os.path.abspath(self.root) + os.sep):
            raise StorageError(f"Invalid object name: {name}")
        return path

    def upload(self, name: str, data: bytes, upsert: bool = False) -> str:
        path = self._path(name)
        if os.path.exists(path) and not upsert:
            raise UploadFailed(f"Object {name} already exists")
        try:
            with open(path, "wb") as fh:
                fh.write(data)
        except OSError as e:
            raise UploadFailed(f"Could not write {name}: {e}") from e
        logger.info("Uploaded %s (%d bytes) to bucket %s", name, len(data), self.bucket)
        return name

    def remove(self, names: Iterable[str]) -> List[str]:
        removed = []
        for name in names:
            path = self._path(name)
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"Could not remove {name}: {e}") from e
            removed.append(name)
        if removed:
            logger.info("Removed %s from bucket %s", ", ".join(removed), self.bucket)
        return removed

    def exists(self, name: str) -> bool:
        return os.path.exists(self._path(name))

    def get_public_url(self, name: str) -> str:
        return f"{self.public_base_url}{self.public_prefix}{name}"

    def path_from_public_url(self, url: Optional[str]) -> Optional[str]:
        # URLs outside this bucket (pasted links, other hosts) have no object to remove
        if not url:
            return None
        idx = url.find(self.public_prefix)
        if idx == -1:
            return None
        return url[idx + len(self.public_prefix):] or None
