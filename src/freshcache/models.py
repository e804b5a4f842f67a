"""Canonical Pydantic models shared across all freshcache modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`GuideConfig`, :class:`LivenessConfig`,
    :class:`StoreConfig`, :class:`OutputConfig`, and :class:`GlobalConfig`.

**Guide models** -- the conditional-GET document and its freshness metadata:
    :class:`GuideDoc`, :class:`GuideSection`, :class:`Guide`,
    :class:`GuideMeta`, :class:`CachedDocument`.

**Liveness and pack-state models**:
    :class:`LinkSpec`, :class:`LinkStatus`, :class:`LivenessSnapshot`,
    :class:`PackItemState`, :class:`PackState`.

Persisted models keep the camel-case key names of the stored JSON via field
aliases (``fetchedAtISO``, ``verifiedAtISO``, ...) and accept either the alias
or the field name on input.  Always dump them with ``by_alias=True``.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_GUIDE_URL = (
    "https://raw.githubusercontent.com/Omerpq/maplesteps-rules/main/data/content/guides/eapr.json"
)


# --- Enumerations ---


class FetchSource(str, enum.Enum):
    """Provenance of the guide payload handed back to the caller."""

    REMOTE = "remote"
    CACHE = "cache"


class FetchStatus(enum.IntEnum):
    """Semantic outcome of a guide load.

    The values mirror HTTP ``200`` and ``304`` so that persisted metadata stays
    readable, but the status is an outcome, not a transport code: a load that
    fell back to the cache after a network failure is also ``REVALIDATED``.
    """

    FULL_FETCH = 200
    REVALIDATED = 304


class LivenessSource(str, enum.Enum):
    """Whether a liveness snapshot came from a verification pass or the store."""

    LIVE = "live"
    CACHE = "cache"


# --- Liveness models ---


class LinkSpec(BaseModel):
    """Immutable identity of one monitored external resource."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    url: str


class LinkStatus(LinkSpec):
    """Result of checking one :class:`LinkSpec`.

    ``checked_status`` is the last observed response code, or ``None`` when
    the check itself failed.  ``last_modified`` is advisory only.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    checked_status: Optional[int] = Field(default=None, alias="status")
    last_modified: Optional[str] = Field(default=None, alias="lastModified")

    @classmethod
    def unchecked(cls, link: LinkSpec) -> LinkStatus:
        """Return a status entry for *link* recording a failed check."""
        return cls(id=link.id, title=link.title, url=link.url)


class LivenessSnapshot(BaseModel):
    """Outcome of one complete verification pass over the configured links.

    A snapshot is replaced as a whole; it is never patched link by link.
    """

    model_config = ConfigDict(populate_by_name=True)

    verified_at: datetime = Field(alias="verifiedAtISO")
    links: list[LinkStatus] = Field(default_factory=list)
    source: LivenessSource = LivenessSource.LIVE


DEFAULT_LINKS: tuple[LinkSpec, ...] = (
    LinkSpec(
        id="docs_overview",
        title="Express Entry — Documents",
        url="https://www.canada.ca/en/immigration-refugees-citizenship/services/immigrate-canada/express-entry/documents.html",
    ),
    LinkSpec(
        id="pof",
        title="Proof of funds",
        url="https://www.canada.ca/en/immigration-refugees-citizenship/services/immigrate-canada/express-entry/documents/proof-funds.html",
    ),
    LinkSpec(
        id="language",
        title="Language test results",
        url="https://www.canada.ca/en/immigration-refugees-citizenship/services/immigrate-canada/express-entry/documents/language-test.html",
    ),
    LinkSpec(
        id="police",
        title="Police certificates",
        url="https://www.canada.ca/en/immigration-refugees-citizenship/services/immigrate-canada/express-entry/documents/police-certificates.html",
    ),
    LinkSpec(
        id="medical",
        title="Medical exam (PR)",
        url="https://www.canada.ca/en/immigration-refugees-citizenship/services/application/medical-police/medical-exams/requirements-permanent-residents.html",
    ),
    LinkSpec(
        id="photo_specs",
        title="PR photo specs (PDF)",
        url="https://www.canada.ca/content/dam/ircc/migration/ircc/english/information/applications/guides/pdf/5445eb-e.pdf",
    ),
    LinkSpec(
        id="help_filesize",
        title="IRCC file-size guidance",
        url="https://ircc.canada.ca/english/helpcentre/answer.asp?qnum=1123&top=23",
    ),
)


# --- Guide models ---


class GuideDoc(BaseModel):
    """One checklist item inside a :class:`GuideSection`."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    required: bool = False
    official_link: Optional[str] = Field(default=None, alias="officialLink")
    description: Optional[str] = None


class GuideSection(BaseModel):
    """A titled group of :class:`GuideDoc` items."""

    id: str
    title: str
    docs: list[GuideDoc] = Field(default_factory=list)


class Guide(BaseModel):
    """The remote document-pack guide.

    :meth:`empty` is the sentinel served when neither the network nor the
    store can provide a guide.
    """

    id: str = "eapr"
    title: str = "e-APR Document Pack"
    sections: list[GuideSection] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> Guide:
        """Return the empty guide (no sections, no tips)."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.sections and not self.tips


class GuideMeta(BaseModel):
    """Validator and timestamp metadata persisted next to the guide payload.

    ``etag`` and ``last_modified`` are only ever written by a full fetch;
    revalidation rewrites ``fetched_at`` and ``status`` and keeps the rest.
    """

    model_config = ConfigDict(populate_by_name=True)

    etag: Optional[str] = None
    last_modified: Optional[str] = None
    status: Optional[FetchStatus] = None
    fetched_at: Optional[datetime] = Field(default=None, alias="fetchedAtISO")
    cached_at: Optional[datetime] = Field(default=None, alias="__cachedAt")


class CachedDocument(BaseModel):
    """A guide payload plus the freshness metadata of this particular load."""

    payload: Guide
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    fetched_at: datetime
    cached_at: Optional[datetime] = None
    source: FetchSource
    status: FetchStatus

    @property
    def freshness_label(self) -> str:
        """``"updated"`` after a full fetch, ``"validated"`` otherwise."""
        return "updated" if self.status == FetchStatus.FULL_FETCH else "validated"


# --- Pack state ---


class PackItemState(BaseModel):
    """User progress on one checklist item.

    Unknown keys written by other clients are preserved.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    provided: Optional[bool] = None
    filename: Optional[str] = None
    size_bytes: Optional[int] = Field(default=None, alias="sizeBytes")
    notes: Optional[str] = None


class PackState(BaseModel):
    """Checklist progress keyed by section id, then item id."""

    model_config = ConfigDict(populate_by_name=True)

    items: dict[str, dict[str, PackItemState]] = Field(default_factory=dict)
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    def item(self, section_id: str, item_id: str) -> PackItemState:
        """Return the state for one item, creating empty entries as needed."""
        section = self.items.setdefault(section_id, {})
        return section.setdefault(item_id, PackItemState())


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP transport settings shared by the guide and liveness caches."""

    timeout: float = Field(default=12.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    offline: bool = Field(
        default=False,
        description="Refuse every request locally, as a platform that blocks "
        "cross-origin requests would",
    )


class GuideConfig(BaseModel):
    """Where the document-pack guide is fetched from."""

    url: str = Field(default=DEFAULT_GUIDE_URL, description="Guide JSON URL")


class LivenessConfig(BaseModel):
    """TTL policy and link list for the liveness cache."""

    ttl_seconds: int = Field(default=24 * 60 * 60, description="Snapshot TTL in seconds")
    links: list[LinkSpec] = Field(default_factory=lambda: list(DEFAULT_LINKS))
    restamp_on_fallback: bool = Field(
        default=False,
        description="Re-stamp verified_at to now when a failed pass falls back "
        "to the stored snapshot",
    )


class StoreConfig(BaseModel):
    """Location of the durable key-value store."""

    directory: Optional[str] = Field(
        default=None, description="Store directory (defaults to the XDG cache dir)"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/freshcache/config.json``.

    Loaded and saved by :func:`~freshcache.config.load_global_config` and
    :func:`~freshcache.config.save_global_config`. See
    :func:`~freshcache.config.resolve_config` for the full precedence chain.
    """

    guide: GuideConfig = Field(default_factory=GuideConfig)
    liveness: LivenessConfig = Field(default_factory=LivenessConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
