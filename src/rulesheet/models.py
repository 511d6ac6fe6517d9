# pydantic models for summaries, identities and api payloads
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


# identity snapshot stored on a summary when it is created
class CreatedBy(BaseModel):
    uid: str
    name: Optional[str] = None
    email: Optional[str] = None


# signed-in user as returned by the identity provider
class Identity(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    email_verified: bool = False
    id_token: Optional[str] = None

    def snapshot(self) -> CreatedBy:
        """Identity fields kept on a record for later permission checks"""
        return CreatedBy(uid=self.uid, name=self.display_name or self.email, email=self.email)


# persisted rules summary, stored with camelCase keys
class SummaryRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    game_title: str = Field(alias="gameTitle")
    original_filename: str = Field(alias="originalFilename")
    markdown: str
    bgg_link: Optional[str] = Field(default=None, alias="bggLink")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    created_by: Optional[CreatedBy] = Field(default=None, alias="createdBy")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    @property
    def filenames(self) -> List[str]:
        return [name.strip() for name in self.original_filename.split(",") if name.strip()]

    def to_document(self) -> dict:
        """Serialize to the stored document shape"""
        return self.model_dump(by_alias=True, exclude_none=True)


# one uploaded file waiting to be summarized
class UploadedPDF(BaseModel):
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


# warning shown when a pending file was already summarized
class DuplicateWarning(BaseModel):
    filename: str
    summaries: List[SummaryRecord]


# request model for editing a summary
class SummaryUpdate(BaseModel):
    markdown: Optional[str] = None
    game_title: Optional[str] = None
    bgg_link: Optional[str] = None


# response model for the search endpoint
class SearchResponse(BaseModel):
    term: str
    html: str
    match_count: int
    current_index: int
    label: str
    is_open: bool = True


# response model for duplicate lookups
class DuplicateResponse(BaseModel):
    query: str
    matches: List[SummaryRecord]
    warnings: List[DuplicateWarning] = Field(default_factory=list)
