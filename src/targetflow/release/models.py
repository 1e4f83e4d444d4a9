# release/models.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

# -------------------- GitHub release payloads --------------------


class ReleaseAsset(BaseModel):
    id: int
    name: str
    content_type: str = "application/octet-stream"
    size: int = 0
    browser_download_url: str = ""


class Release(BaseModel):
    id: int
    tag_name: str
    name: Optional[str] = None
    draft: bool = False
    prerelease: bool = False
    html_url: str = ""
    upload_url: str = ""
    assets: list[ReleaseAsset] = Field(default_factory=list)

    def asset_named(self, name: str) -> Optional[ReleaseAsset]:
        return next((a for a in self.assets if a.name == name), None)


class NewRelease(BaseModel):
    tag_name: str
    name: Optional[str] = None
    body: Optional[str] = None
    draft: bool = False
    prerelease: bool = False
