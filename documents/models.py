"""
documents/models.py -- Domain dataclass for the owned resource.

Pure data container, zero logic. Only the metadata fields matter here; file
storage is handled elsewhere.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Document:
    """Document metadata owned by exactly one user.

    owner_id is the credential record id of the uploader. It is the only
    field auth.ownership looks at.

    id is None before the record is written to the database.
    """

    owner_id: str
    title: str
    description: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
