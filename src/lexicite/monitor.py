# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Legislation freshness monitor – fetch + hash upstream pages, detect change,
drive re-chunk + re-ingest + index invalidation.

Sweeps are triggered from outside (cron endpoint); there is no internal
timer. Each source is checked independently: one fetch error is logged and
recorded, the remaining sources are still checked.

Freshness per source (stored in source metadata):
  unchecked -> unchanged <-> changes_detected -> updated -> unchanged
  error is reachable from any check and leaves version/hash untouched.
"""
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Optional

import httpx

from .config import Config
from .errors import NotFoundError, PersistenceError, UpstreamFetchError, ValidationError
from .index import IndexCache
from .ingest import Ingestor, content_hash
from .models import CheckLogEntry
from .readers import html_to_text
from .store import ChunkStore

# Official legislation pages to monitor
MONITORED_SOURCES = [
    {
        "name": "NDIS Practice Standards",
        "sector": "ndis",
        "check_url": "https://www.ndiscommission.gov.au/providers/registered-ndis-providers/provider-obligations-and-requirements/ndis-practice-standards",
    },
    {
        "name": "NDIS Code of Conduct",
        "sector": "ndis",
        "check_url": "https://www.ndiscommission.gov.au/about/ndis-code-conduct",
    },
    {
        "name": "Work Health and Safety Act 2020 (WA)",
        "sector": "workplace",
        "check_url": "https://www.legislation.wa.gov.au/legislation/statutes.nsf/main_mrtitle_1120_homepage.html",
    },
    {
        "name": "Fair Work Act 2009",
        "sector": "workplace",
        "check_url": "https://www.legislation.gov.au/Series/C2009A00028",
    },
    {
        "name": "Aged Care Quality Standards",
        "sector": "aged_care",
        "check_url": "https://www.agedcarequality.gov.au/providers/standards",
    },
    {
        "name": "Heavy Vehicle National Law",
        "sector": "transport",
        "check_url": "https://www.nhvr.gov.au/law-policies/heavy-vehicle-national-law-and-regulations",
    },
    {
        "name": "National Safety and Quality Health Service Standards",
        "sector": "healthcare",
        "check_url": "https://www.safetyandquality.gov.au/standards/nsqhs-standards",
    },
    {
        "name": "WHS Construction Regulations",
        "sector": "construction",
        "check_url": "https://www.legislation.wa.gov.au/legislation/statutes.nsf/law_s52057.html",
    },
]


@dataclass
class CheckResult:
    has_changes: bool
    new_hash: Optional[str] = None
    last_modified: Optional[str] = None
    error: Optional[str] = None
    content: Optional[str] = None
    content_type: str = ""

    def to_dict(self) -> dict:
        return {
            "has_changes": self.has_changes,
            "new_hash": self.new_hash,
            "last_modified": self.last_modified,
            "error": self.error,
        }


@dataclass
class UpdateResult:
    source: str
    status: str
    message: str
    chunks_affected: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


class LegislationMonitor:
    def __init__(
        self,
        config: Config,
        store: ChunkStore,
        cache: IndexCache,
        ingestor: Ingestor,
        health=None,
        sources: Optional[list[dict]] = None,
    ):
        self.config = config
        self.store = store
        self.cache = cache
        self.ingestor = ingestor
        self.health = health
        self.sources = sources if sources is not None else MONITORED_SOURCES

    # ── Fetch + diff ─────────────────────────────────

    def fetch(self, url: str) -> httpx.Response:
        try:
            response = httpx.get(
                url,
                headers={"User-Agent": self.config.http_user_agent},
                timeout=self.config.http_timeout,
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(url, str(exc)) from exc
        return response

    def check_for_updates(self, url: str, last_hash: Optional[str] = None) -> CheckResult:
        """Fetch *url* and compare its content hash with *last_hash*.

        Without a previous hash the first check always reports a change.
        Fetch failures are logged and reported as "no change".
        """
        try:
            response = self.fetch(url)
        except UpstreamFetchError as e:
            print(f"Warning: Error checking {url}: {e}")
            return CheckResult(has_changes=False, error=str(e))

        text = response.text
        new_hash = content_hash(text)
        return CheckResult(
            has_changes=(new_hash != last_hash) if last_hash else True,
            new_hash=new_hash,
            last_modified=response.headers.get("last-modified"),
            content=text,
            content_type=response.headers.get("content-type", ""),
        )

    def log_check(self, source_name: str, status: str, details: str = ""):
        try:
            self.store.append_check_log(CheckLogEntry(source_name, status, details))
        except PersistenceError as e:
            print(f"Warning: Failed to log check for {source_name}: {e}")

    # ── Apply ────────────────────────────────────────

    def apply_update(self, source_name: str, content: str, version: Optional[str] = None) -> UpdateResult:
        """Replace a source's chunk set with *content* and invalidate the index."""
        if not source_name or not content or not content.strip():
            raise ValidationError("Missing required fields: sourceName, content")

        source = self.store.get_source_by_name(source_name)
        if source is None:
            raise NotFoundError(f"Source not found: {source_name}")

        chunks = self.ingestor.chunk(content)
        now = datetime.now(timezone.utc).isoformat()
        fields = {
            "version": version or date.today().isoformat(),
            "content_hash": content_hash(content),
            "metadata": {"last_updated": now, "freshness": "updated"},
        }
        try:
            inserted = self.ingestor.replace_chunks(source, chunks, fields)
        except PersistenceError as e:
            # Old chunks may already be gone; the index must follow the store.
            self.cache.invalidate()
            self.log_check(source_name, "error", f"Update failed after {e.inserted} chunks: {e}")
            if self.health:
                self.health.record_update(source_name, ok=False, error=str(e))
            return UpdateResult(source_name, "error", str(e), e.inserted)

        self.cache.invalidate()
        self.log_check(source_name, "updated", f"Updated with {inserted} chunks")
        if self.health:
            self.health.record_update(source_name, ok=True)
        print(f"Updated {source_name}: {inserted} chunks")
        return UpdateResult(
            source_name, "updated", f"Successfully updated with {inserted} chunks", inserted,
        )

    # ── Sweep ────────────────────────────────────────

    def _mark(self, source_id: str, metadata: dict):
        try:
            self.store.update_source(source_id, metadata=metadata)
        except PersistenceError as e:
            print(f"Warning: could not record check state for {source_id}: {e}")

    def _extract(self, check: CheckResult, title: str) -> Optional[str]:
        if not check.content:
            return None
        if "html" in check.content_type.lower():
            return html_to_text(check.content, title)
        if check.content_type.lower().startswith("text/"):
            return check.content
        return None

    def check_source(self, monitored: dict) -> dict:
        name = monitored["name"]
        stored = self.store.get_source_by_name(name)
        last_hash = stored.metadata.get("upstream_hash") if stored else None
        now = datetime.now(timezone.utc).isoformat()

        check = self.check_for_updates(monitored["check_url"], last_hash)
        entry = {
            "name": name,
            "has_changes": check.has_changes,
            "last_modified": check.last_modified,
            "status": "unchanged",
        }

        if check.error:
            self.log_check(name, "error", check.error)
            if stored:
                self._mark(stored.id, {"freshness": "error", "last_checked": now, "last_error": check.error})
            entry.update(status="error", error=check.error)
            return entry

        if check.has_changes:
            self.log_check(name, "changes_detected", f"Hash changed from {last_hash} to {check.new_hash}")
            print(f"Changes detected for: {name}")
            entry["status"] = "changes_detected"
        else:
            self.log_check(name, "unchanged", "")

        if stored:
            self._mark(stored.id, {
                "upstream_hash": check.new_hash,
                "last_checked": now,
                "freshness": entry["status"],
                "last_error": None,
            })
            if check.has_changes and self.config.monitor_auto_apply:
                text = self._extract(check, name)
                if text:
                    entry["update"] = self.apply_update(name, text).to_dict()
        return entry

    def run_sweep(self, sources: Optional[list[dict]] = None) -> dict:
        """Check every monitored source; failures are isolated per source."""
        results: list[dict] = []
        for monitored in sources if sources is not None else self.sources:
            try:
                results.append(self.check_source(monitored))
            except (PersistenceError, ValidationError, NotFoundError) as e:
                print(f"Warning: check of {monitored.get('name')} failed: {e}")
                self.log_check(monitored.get("name", ""), "error", str(e))
                results.append({
                    "name": monitored.get("name"),
                    "has_changes": False,
                    "last_modified": None,
                    "status": "error",
                    "error": str(e),
                })

        changed = sum(1 for r in results if r["has_changes"])
        errors = sum(1 for r in results if r["status"] == "error")
        if self.health:
            self.health.record_sweep(len(results), changed, errors)
        print(f"Sweep: {len(results)} sources checked, {changed} changed, {errors} errors")
        return {
            "checked_at": datetime.now(timezone.utc).isoformat(),
            "results": results,
            "changes_detected": changed,
            "errors": errors,
        }

    # ── Status ───────────────────────────────────────

    def source_status(self) -> list[dict]:
        return [s.to_dict() for s in self.store.list_sources()]

    def check_logs(self, limit: int = 50) -> list[dict]:
        return [e.to_dict() for e in self.store.list_check_logs(limit)]
