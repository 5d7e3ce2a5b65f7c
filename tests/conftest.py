import json
import os
from unittest.mock import AsyncMock

import pytest
from sanic import Sanic
from sanic.log import logger
from sanic_testing import TestManager

from gitbucket_bridge.config import Config
from gitbucket_bridge.jenkins.host import InMemoryJobRegistry
from gitbucket_bridge.jenkins.scm import GitSCM, RemoteConfig


def load_sample_data(filename):
    with open(os.path.join(os.path.dirname(__file__), "samples", filename)) as f:
        return json.load(f)


class FakeJob:
    """Stands in for a host job; poll and schedule_build are AsyncMocks."""

    def __init__(
        self,
        name,
        root_dir,
        urls=(),
        scm=None,
        link_config=None,
        changes=True,
        scheduled=True,
    ):
        self.name = name
        self.display_name = name
        self.root_dir = root_dir
        self.scm = scm if scm is not None else git_scm(*urls)
        self.link_config = link_config
        self.trigger = None
        self.next_build_number = 1
        self.poll = AsyncMock(return_value=changes)
        self.schedule_build = AsyncMock(return_value=scheduled)


def git_scm(*urls):
    return GitSCM(remotes=[RemoteConfig(urls=list(urls))])


@pytest.fixture
def config():
    config = Config(
        WEBHOOK_PATH="gitbucket-webhook",
        ROOT_URL="http://jenkins.example.com/",
        CRUMB=None,
        OVERRIDE_LOGGING="DEBUG",
        COMMENT_TIMEOUT=10.0,
        COMMENT_MAX_REDIRECTS=3,
        POLLING_LOG_NAME="gitbucket-polling.log",
        STERILE=False,
    )

    logger.setLevel(config.OVERRIDE_LOGGING)

    return config


@pytest.fixture
def push_payload():
    return load_sample_data("push.json")


@pytest.fixture
def registry():
    return InMemoryJobRegistry()


@pytest.fixture(scope="function")
def app(config, registry) -> Sanic:
    """Create a Sanic app for testing."""
    from gitbucket_bridge.web import create_app

    app = create_app(config=config, registry=registry)
    TestManager(app)
    return app


@pytest.fixture
def make_job(tmp_path):
    def make_job(name="job", **kwargs):
        root_dir = tmp_path / name
        root_dir.mkdir(parents=True, exist_ok=True)
        return FakeJob(name, root_dir, **kwargs)

    return make_job
