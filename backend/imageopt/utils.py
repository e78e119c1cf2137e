import os
import re
import uuid
from typing import Optional, Tuple

from .models import OptimizationResult

ENCODED_EXT = ".jpg"


def safe_filename(filename: str) -> str:
    name = os.path.basename(filename or "")
    name = re.sub(r'[^A-Za-z0-9._-]', '_', name)
    return name or "image"


def make_unique_filename(filename: str) -> str:
    base, ext = os.path.splitext(safe_filename(filename))
    return f"{base}_{uuid.uuid4().hex}{ext}"


def output_names(result: OptimizationResult) -> Tuple[str, str]:
    """Names for the optimized output and thumbnail of one result.

    Re-encoded outputs are JPEG and get a .jpg extension; a passed-through
    source keeps its own extension.
    """
    base, ext = os.path.splitext(make_unique_filename(result.original_name))
    optimized_ext = ENCODED_EXT if result.reencoded else ext.lower()
    return f"{base}{optimized_ext}", f"{base}_thumb{ENCODED_EXT}"


def parse_target_size(value: Optional[str], default: int) -> int:
    """Byte budget from the targetSize form field.

    Only the leading integer is read ("51200.5" and "51200kb" give
    51200). Missing, non-numeric or non-positive values use default.
    """
    if value is None:
        return default
    match = re.match(r"\s*[+-]?\d+", str(value))
    if not match:
        return default
    size = int(match.group())
    return size if size > 0 else default
