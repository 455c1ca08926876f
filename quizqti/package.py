# Description: In-memory zip helpers for QTI packages.
# file name: package.py

import io
import zipfile
from typing import Dict

from quizqti.errors import QTIDecodeError


def build_zip(package) -> bytes:
    """Write the artifacts of a QTIPackage (or any path -> text mapping) into a zip"""
    files = package.files() if hasattr(package, "files") else dict(package)
    zip_buffer = io.BytesIO()
    with zipfile.ZipFile(zip_buffer, 'w', zipfile.ZIP_DEFLATED) as zip_file:
        for path, content in files.items():
            if isinstance(content, str):
                content = content.encode('utf-8')
            zip_file.writestr(path, content)

    zip_buffer.seek(0)
    return zip_buffer.getvalue()


def read_zip(zip_bytes: bytes) -> Dict[str, str]:
    """Return every XML file in the archive as text, keyed by archive path.

    Raises QTIDecodeError when the bytes are not a readable zip archive.
    """
    files = {}
    try:
        with zipfile.ZipFile(io.BytesIO(zip_bytes)) as zip_file:
            for info in zip_file.infolist():
                if info.is_dir() or not info.filename.lower().endswith(".xml"):
                    continue
                files[info.filename] = zip_file.read(info.filename).decode('utf-8-sig', errors='replace')
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise QTIDecodeError(f"Not a valid zip archive: {e}") from e
    return files
