"""Pydantic models for config types."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class RepoConfig(BaseModel):
    """Repository configuration."""
    model_config = ConfigDict(extra="allow")

    remote: str = "origin"
    trunk: str = "main"
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None
    branch_prefix: str = "gs-"

class UserConfig(BaseModel):
    """User configuration."""
    model_config = ConfigDict(extra="allow")

    verify: bool = True
    debug: bool = False

class ToolConfig(BaseModel):
    """Tool configuration."""
    model_config = ConfigDict(extra="allow")

    pretend: bool = False

class GitStackConfig(BaseModel):
    """Full pygitstack configuration."""
    model_config = ConfigDict(extra="allow")

    repo: RepoConfig = Field(default_factory=RepoConfig)
    user: UserConfig = Field(default_factory=UserConfig)
    tool: ToolConfig = Field(default_factory=ToolConfig)
