# fasttrack/domain/services/identifier_service.py

import re
import secrets
from datetime import datetime

SUBMISSION_ID_PATTERN = re.compile(r"^FT\d{8}[0-9A-F]{8}$")
FAST_TRACK_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
SIRET_PATTERN = re.compile(r"^\d{14}$")


class IdentifierService:
    """
    Domain service minting the public identifiers of the workflow.

    Uniqueness against persisted rows is the caller's job: these values
    are random and the callers retry on collision.
    """

    @staticmethod
    def new_fast_track_id() -> str:
        """128-bit random public market identifier, 32 lowercase hex chars."""
        return secrets.token_hex(16)

    @staticmethod
    def new_submission_id(moment: datetime) -> str:
        """``FT<YYYYMMDD><8 uppercase hex>``, the date taken from ``moment``."""
        return f"FT{moment.strftime('%Y%m%d')}{secrets.token_hex(4).upper()}"

    @staticmethod
    def is_submission_id(value: str) -> bool:
        return bool(value) and SUBMISSION_ID_PATTERN.match(value) is not None

    @staticmethod
    def normalize_siret(value: str) -> str:
        """Strip whitespace a candidate may have typed inside the number."""
        return re.sub(r"\s", "", value or "")

    @staticmethod
    def is_siret(value: str) -> bool:
        return bool(value) and SIRET_PATTERN.match(value) is not None

    @staticmethod
    def format_siret(value: str) -> str:
        """``12345678901234`` -> ``123 456 789 01234``."""
        if not value:
            return ""
        return re.sub(r"(\d{3})(\d{3})(\d{3})(\d{5})", r"\1 \2 \3 \4", value)

    @staticmethod
    def default_company_name(siret: str) -> str:
        return f"Entreprise {siret[:9]}"
