"""Pydantic models for normalized CalDAV tasks."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

CALDAV_TYPE = "CALDAV"


class CaldavIssue(BaseModel):
    """Model for a task read from a VTODO component."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Todo UID")
    completed: bool = Field(False, description="Whether COMPLETED is set")
    item_url: str = Field(description="Resource URL of the todo on the server")
    summary: str = Field("", description="Task title")
    due: str = Field("", description="Raw DUE value in ISO 8601 form")
    start: str = Field("", description="Raw DTSTART value in ISO 8601 form")
    last_modified: int = Field(description="LAST-MODIFIED as Unix timestamp")
    labels: List[str] = Field(default_factory=list, description="Categories")
    note: str = Field("", description="Task description")


class SearchResultItem(BaseModel):
    """Search hit projected for the host's issue search."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(description="Task summary")
    issue_type: str = Field(
        CALDAV_TYPE, alias="issueType", description="Issue provider tag"
    )
    issue_data: CaldavIssue = Field(alias="issueData", description="Matched task")

    @classmethod
    def from_issue(cls, issue: CaldavIssue) -> "SearchResultItem":
        return cls(title=issue.summary, issue_type=CALDAV_TYPE, issue_data=issue)
