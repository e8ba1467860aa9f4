"""Import and export option types and status reports."""
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel


class ImportVisibility(StrEnum):
    """Visibility applied to imported bookmarks."""

    DEFAULT = "default"  # keep the flag read from the file
    PRIVATE = "private"
    PUBLIC = "public"


class OnConflictStrategy(StrEnum):
    """What to do when an imported bookmark URL is already registered."""

    OVERWRITE = "overwrite"
    KEEP = "keep"


class ExportFormat(StrEnum):
    """Supported bookmark export formats."""

    JSON = "json"
    NETSCAPE = "netscape"


@dataclass
class ImportStatus:
    """Outcome of a bookmark import."""

    on_conflict: OnConflictStrategy
    new_or_updated: int = 0
    skipped: int = 0
    invalid: int = 0

    @property
    def summary(self) -> str:
        """Human-readable summary used as a flash message."""
        suffix = " or updated" if self.on_conflict == OnConflictStrategy.OVERWRITE else ""
        return (
            f"{self.new_or_updated} new{suffix}, "
            f"{self.skipped} skipped, "
            f"{self.invalid} invalid"
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        return {
            "new_or_updated": self.new_or_updated,
            "skipped": self.skipped,
            "invalid": self.invalid,
            "summary": self.summary,
        }


@dataclass
class ImportCounter:
    """Total and created counts for one kind of imported object."""

    total: int = 0
    created: int = 0

    @property
    def skipped(self) -> int:
        """Objects that already existed."""
        return self.total - self.created

    def record(self, created: bool) -> None:
        """Count one object, created or reused."""
        self.total += 1
        if created:
            self.created += 1


@dataclass
class FeedImportStatus:
    """Outcome of an OPML import."""

    categories: ImportCounter = field(default_factory=ImportCounter)
    feeds: ImportCounter = field(default_factory=ImportCounter)
    subscriptions: ImportCounter = field(default_factory=ImportCounter)
    failed_feed_urls: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """Human-readable summary used as a flash message."""
        summary = (
            f"{self.categories.total} categories ({self.categories.created} new), "
            f"{self.subscriptions.total} subscriptions ({self.subscriptions.created} new)"
        )
        if self.failed_feed_urls:
            summary += f", {len(self.failed_feed_urls)} feeds could not be retrieved"
        return summary

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        return {
            name: {"total": counter.total, "created": counter.created}
            for name, counter in (
                ("categories", self.categories),
                ("feeds", self.feeds),
                ("subscriptions", self.subscriptions),
            )
        } | {"failed_feed_urls": self.failed_feed_urls, "summary": self.summary}


class BookmarkExportForm(BaseModel):
    """Schema for the bookmark export form."""

    csrf_token: str = ""
    format: ExportFormat = ExportFormat.JSON
    visibility: str = "all"
