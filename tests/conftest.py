import threading

import pytest

from lexicite.config import Config
from lexicite.health import HealthTracker
from lexicite.index import IndexCache
from lexicite.ingest import Ingestor
from lexicite.monitor import LegislationMonitor
from lexicite.search import SearchEngine
from lexicite.store import ChunkStore

NDIS_STANDARDS = """# NDIS Practice Standards

## Standard 1 Rights and Responsibilities

Each participant accesses supports that promote, uphold and respect their
legal and human rights. Participants are enabled to exercise informed choice
and control, and their privacy and dignity is respected by every provider.

## Standard 2 Incident Management

Each participant is safeguarded by the provider's incident management
system. Every incident is acknowledged, responded to, well-managed and
learned from. Reportable incidents must be notified to the NDIS Commission
within 24 hours.

## Standard 3 Worker Screening

Workers in risk assessed roles must hold a current NDIS worker screening
clearance before they deliver supports to a participant.
"""

WHS_ACT = """# Work Health and Safety Act 2020 (WA)

Part 2 Health and safety duties

A person conducting a business or undertaking must ensure, so far as is
reasonably practicable, the health and safety of workers engaged by the
business. The duty covers hazard identification and risk control.

Section 19 Primary duty of care

The primary duty of care requires the PCBU to provide and maintain a work
environment without risks to health and safety, including safe plant and
structures and safe systems of work.
"""

HVNL = """# Heavy Vehicle National Law

Section 26C Chain of responsibility

Each party in the chain of responsibility must ensure, so far as is
reasonably practicable, the safety of the party's transport activities
relating to a heavy vehicle. Fatigue management and driver rest breaks are
recorded in the work diary.
"""


@pytest.fixture
def config(tmp_path):
    """Config with an in-memory store and known trigger secrets."""
    return Config(
        data_path=str(tmp_path / "data"),
        persist_store=False,
        webhook_secret="hook-secret",
        cron_secret="cron-secret",
    )


@pytest.fixture
def health():
    return HealthTracker()


@pytest.fixture
def store():
    return ChunkStore()


@pytest.fixture
def index_lock():
    return threading.Lock()


@pytest.fixture
def cache(store, index_lock, health, config):
    return IndexCache(
        store.load_all, index_lock=index_lock, health=health,
        k1=config.bm25_k1, b=config.bm25_b,
    )


@pytest.fixture
def engine(cache, config, health):
    return SearchEngine(cache, config, health)


@pytest.fixture
def ingestor(config, store, cache, index_lock, health):
    return Ingestor(config, store, cache, index_lock, health)


@pytest.fixture
def monitor(config, store, cache, ingestor, health):
    return LegislationMonitor(config, store, cache, ingestor, health, sources=[])


@pytest.fixture
def corpus(ingestor):
    """Three sources across three sectors."""
    ingestor.ingest_all([
        {"name": "NDIS Practice Standards", "sector": "ndis", "content": NDIS_STANDARDS},
        {"name": "Work Health and Safety Act 2020 (WA)", "sector": "workplace", "content": WHS_ACT},
        {"name": "Heavy Vehicle National Law", "sector": "transport", "content": HVNL},
    ])
    return ingestor
