# fasttrack/adapters/outbound/rendering/dossier_bundler.py

import hashlib
import io
import os
import re
import unicodedata
import zipfile
from typing import Iterable, Tuple

# Fixed member timestamp so rebuilding a bundle gives the same bytes
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
CHECKSUMS_NAME = "SHA256SUMS.txt"


def slugify(value: str) -> str:
    """ASCII, lowercase, underscores: ``Kbis < 3 mois`` -> ``kbis_3_mois``."""
    normalized = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "_", normalized.lower()).strip("_")
    return slug or "document"


def attachment_member_name(document_id: int, document_name: str, siret: str, filename: str) -> str:
    """``<document_id>_<slug>_<siret><ext>``"""
    ext = os.path.splitext(filename or "")[1].lower()
    return f"{document_id}_{slugify(document_name)}_{siret}{ext}"


def _member(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    return info


def build_dossier_zip(members: Iterable[Tuple[str, bytes]]) -> bytes:
    """
    Pack ``(name, data)`` members plus a SHA256SUMS.txt manifest.

    Members are written in name order; the manifest comes last.
    """
    ordered = sorted(members, key=lambda member: member[0])
    checksum_lines = [f"{hashlib.sha256(data).hexdigest()}  {name}" for name, data in ordered]

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in ordered:
            zf.writestr(_member(name), data)
        zf.writestr(_member(CHECKSUMS_NAME), ("\n".join(checksum_lines) + "\n").encode("utf-8"))
    return buffer.getvalue()
