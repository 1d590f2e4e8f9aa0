"""Client-held session model"""

from datetime import datetime
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class Session(BaseModel):
    """Queue name, login time and the integrity tag derived from both"""

    model_config = ConfigDict(populate_by_name=True)

    queue_name: str = Field(alias="currentQueue")
    login_time: datetime = Field(alias="loginTime")
    tag: str = Field(alias="sessionHash")

    def to_document(self) -> Dict[str, str]:
        return self.model_dump(mode="json", by_alias=True)
