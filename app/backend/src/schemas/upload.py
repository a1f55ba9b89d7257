"""Upload schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

InputType = Literal["input_file", "input_image"]

INPUT_CLASSIFICATION: dict[str, str] = {
    "input_file": "document",
    "input_image": "vision",
}


class FileReference(BaseModel):
    """A provider file id paired with how it should be fed to the model."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    openai_file_id: str = Field(alias="openaiFileId", min_length=1)
    input_type: InputType = Field(alias="inputType")

    @property
    def classification(self) -> str:
        return INPUT_CLASSIFICATION[self.input_type]


class UploadedFileInfo(FileReference):
    id: str
    name: str
    type: str
    size: int


class UploadResponse(BaseModel):
    files: list[UploadedFileInfo]
