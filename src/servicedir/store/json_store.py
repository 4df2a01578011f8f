"""
JSON-file listing store.

The whole directory lives in one file (default: `data/services.json`) shaped as
`{"services": [...]}`. Every read loads the file; every append rewrites it. There is
no indexing and no write locking.

Reads are best-effort: a missing or unreadable file is an empty directory, and
individual records that fail validation are skipped with a warning. Write failures
raise `ListingStoreError`.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from servicedir.domain.models import Author, Listing, ListingCreate, Slug

logger = logging.getLogger(__name__)


class ListingStoreError(RuntimeError):
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JsonListingStore:
    def __init__(self, path: Path, *, clock: Callable[[], datetime] = _utc_now):
        self._path = path
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def _read_payload(self) -> dict[str, Any]:
        if not self._path.exists():
            logger.warning("Listing file %s not found; starting empty", self._path)
            return {"services": []}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Error reading listings from %s: %s", self._path, e)
            return {"services": []}
        if not isinstance(payload, dict) or not isinstance(payload.get("services"), list):
            logger.warning("Listing file %s has no `services` array; starting empty", self._path)
            return {"services": []}
        return payload

    def list_all(self) -> list[Listing]:
        """Return a full snapshot of the directory in file order."""
        out: list[Listing] = []
        for i, raw in enumerate(self._read_payload()["services"]):
            try:
                out.append(Listing.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping invalid listing #%d in %s: %s", i, self._path, e.errors()[:1])
        return out

    def get(self, listing_id: str) -> Listing | None:
        for listing in self.list_all():
            if listing.id == listing_id:
                return listing
        return None

    def _next_id(self, now: datetime, taken: set[str]) -> str:
        # Millisecond timestamp ids; bump on collision so ids stay unique.
        candidate = int(now.timestamp() * 1000)
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def append(self, submission: ListingCreate, *, author: Author | None = None) -> Listing:
        """Persist a new listing and return it with its assigned id/timestamp/defaults."""
        payload = self._read_payload()
        records: list[Any] = payload["services"]
        taken = {str(r.get("_id")) for r in records if isinstance(r, dict)}

        now = self._clock()
        listing = Listing(
            id=self._next_id(now, taken),
            created_at=now,
            slug=Slug(current=submission.slug()),
            title=submission.title,
            description=submission.description,
            category=submission.category,
            image=submission.link,
            pitch=submission.pitch,
            price_range=submission.price_range,
            contact_method=submission.contact_method,
            contact_details=submission.contact_details,
            service_radius=submission.service_radius,
            availability=list(submission.availability),
            author=author or submission.author,
            location=submission.location,
            views=0,
            is_active=True,
            featured=False,
        )

        records.append(listing.to_record())
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise ListingStoreError(f"Failed to write listings to {self._path}") from e

        logger.info("Created listing %s (%s)", listing.id, listing.category)
        return listing
