"""
Contract ABIs and on-chain enumerations.

ABIs are the compiled Hardhat artifacts for the EduSystem deployment
(EduToken, EduIdentity, EduConsent), shipped as JSON next to this module.
"""

import enum
import json
from functools import lru_cache
from pathlib import Path
from typing import List

ABI_DIR = Path(__file__).parent / "abi"

EDU_IDENTITY = "EduIdentity"
EDU_CONSENT = "EduConsent"
EDU_TOKEN = "EduToken"


class DataType(enum.IntEnum):
    """Mirror of EduConsent.DataType (uint8 on chain)."""
    BASIC_PROFILE = 0
    ACADEMIC_RECORD = 1
    SOCIAL_PROFILE = 2

    @property
    def label(self) -> str:
        return _DATA_TYPE_INFO[self][0]

    @property
    def description(self) -> str:
        return _DATA_TYPE_INFO[self][1]

    def to_dict(self) -> dict:
        return {"id": int(self), "name": self.label, "description": self.description}


_DATA_TYPE_INFO = {
    DataType.BASIC_PROFILE: ("BasicProfile", "Name, handle, university, enrollment year"),
    DataType.ACADEMIC_RECORD: ("AcademicRecord", "Grades, transcripts, and course performance"),
    DataType.SOCIAL_PROFILE: ("SocialProfile", "Social connections, posts, and activities"),
}

ALL_DATA_TYPES: List[DataType] = list(DataType)


class InvalidDataType(ValueError):
    """Raised when a data type is not one of 0, 1, 2."""


def parse_data_type(value) -> DataType:
    """
    Parse a data type from a path segment or JSON value.

    Booleans are rejected even though they are ints in Python; the JSON
    body `true` is not a data type.
    """
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidDataType(f"Invalid data type: {value!r}")
    try:
        return DataType(int(value))
    except (TypeError, ValueError):
        raise InvalidDataType(
            "DataType must be 0 (BasicProfile), 1 (AcademicRecord), or 2 (SocialProfile)"
        )


class Role(enum.IntEnum):
    """Mirror of EduIdentity.Role."""
    NONE = 0
    STUDENT = 1
    REQUESTER = 2


@lru_cache(maxsize=None)
def load_abi(contract_name: str) -> list:
    """Load a contract ABI from the bundled JSON artifacts."""
    path = ABI_DIR / f"{contract_name}.json"
    with open(path, "r") as f:
        return json.load(f)
