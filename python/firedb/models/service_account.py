"""
firedb/models/service_account.py

Provides the GCPServiceAccountKey pydantic model for the JSON key file
downloaded from the Firebase / Google Cloud console.
"""

from typing import Literal
from pydantic import BaseModel, ConfigDict, Field


class GCPServiceAccountKey(BaseModel):
    """
    Model for a GCP service account JSON key.

    Only private_key and client_email are required to sign an assertion; other
    fields of the console download that are not modelled here are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["service_account"] = "service_account"
    project_id: str = ""
    private_key_id: str = ""
    private_key: str = Field(..., repr=False)
    client_email: str
    client_id: str = ""


__all__ = ["GCPServiceAccountKey"]
