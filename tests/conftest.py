"""Shared fixtures."""

import os
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from folio import FileStore, PathResolver, RelativePath
from folio.api import create_app
from folio.config import FolioConfig
from folio.expiration import (
    DELETE_FILE_ACTIVITY,
    Activity,
    ActivityContext,
    ActivityRegistry,
    DeleteFileActivity,
    Scheduler,
    TaskHandle,
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Clear FOLIO_ variables and run each test in its own directory."""
    for key in list(os.environ):
        if key.startswith("FOLIO_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def uploads_root(tmp_path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def resolver(uploads_root) -> PathResolver:
    return PathResolver(uploads_root)


@pytest.fixture
def store(resolver) -> FileStore:
    return FileStore(resolver)


class ImmediateScheduler(Scheduler):
    """Fake scheduler that runs the deletion activity as soon as a task is submitted."""

    def __init__(self, fire: bool = True):
        self.fire = fire
        self.registry = ActivityRegistry()
        self.submitted: list[tuple[RelativePath, timedelta]] = []

    def on_activity(self, activity: Activity) -> None:
        self.registry.register(activity)

    async def submit(self, target: RelativePath, ttl: timedelta) -> TaskHandle:
        self.submitted.append((target, ttl))
        handle = TaskHandle(
            task_id=uuid4(),
            target=str(target),
            deadline=datetime.now(timezone.utc) + ttl,
        )
        if self.fire:
            ctx = ActivityContext(
                task_id=handle.task_id,
                activity_name=DELETE_FILE_ACTIVITY,
                target=str(target),
            )
            await self.registry.execute(
                DELETE_FILE_ACTIVITY, {"path": str(target)}, ctx, timeout=10.0
            )
        return handle


@pytest.fixture
def immediate_scheduler(store) -> ImmediateScheduler:
    scheduler = ImmediateScheduler()
    scheduler.on_activity(DeleteFileActivity(store))
    return scheduler


@pytest.fixture
def recording_scheduler() -> ImmediateScheduler:
    """Scheduler that records submissions without firing them."""
    return ImmediateScheduler(fire=False)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


def make_app_config(tmp_path: Path, **kwargs) -> FolioConfig:
    """Create a FolioConfig rooted in tmp_path with a fast in-memory scheduler."""
    defaults = {
        "uploads_path": tmp_path / "uploads",
        "web_path": tmp_path / "web",
        "expiration": {
            "backend": "memory",
            "poll_interval": 0.02,
            "activity_timeout": 2.0,
            "retry": {"base_seconds": 0.05},
        },
    }
    defaults.update(kwargs)
    return FolioConfig(**defaults)


@pytest.fixture
def app_config(tmp_path) -> FolioConfig:
    return make_app_config(tmp_path)


@pytest.fixture
def client(app_config):
    app = create_app(app_config, rng=random.Random(42))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def client_factory(tmp_path):
    """Build TestClients for custom configs; closes them at teardown."""
    clients = []

    def factory(scheduler=None, **config_kwargs) -> TestClient:
        config = make_app_config(tmp_path, **config_kwargs)
        app = create_app(config, scheduler=scheduler, rng=random.Random(7))
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield factory

    for test_client in clients:
        test_client.__exit__(None, None, None)
