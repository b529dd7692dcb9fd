import json
import threading
import uuid
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner
from unittest.mock import MagicMock, patch

from reactor.models.container import ContainerRecord, ContainerStatus, ExecResult
from reactor.models.settings import Settings
from reactor.services.exceptions import ContainerNotFoundError, DockerServiceError


class FakeDockerService:
    """In-memory stand-in for DockerService.

    Keeps containers in a dict and records every mutating call, so tests
    can assert which daemon operations happened without a live daemon.
    """

    def __init__(self):
        self.containers = {}
        self.images = set()
        self.calls = []
        self.exec_results = {}
        self.fail_start = set()
        self.fail_create = set()
        self.start_errors = {}
        self.exec_options = []
        self.before_create = None
        self._lock = threading.Lock()

    def _lookup(self, id_or_name):
        if id_or_name in self.containers:
            return self.containers[id_or_name]
        for container in self.containers.values():
            if container['name'] == id_or_name:
                return container
        raise ContainerNotFoundError(f"Container '{id_or_name}' not found")

    @staticmethod
    def _to_record(container):
        return ContainerRecord(
            id=container['id'],
            name=container['name'],
            status=container['status'],
            image=container['image'],
            labels=dict(container['labels']),
        )

    def add_container(self, name, status=ContainerStatus.STOPPED, labels=None, image="test:latest"):
        container_id = uuid.uuid4().hex * 2
        self.containers[container_id] = {
            'id': container_id,
            'name': name,
            'status': status,
            'image': image,
            'labels': dict(labels or {}),
            'config': {},
        }
        return container_id

    def names(self):
        return sorted(c['name'] for c in self.containers.values())

    def calls_for(self, operation):
        return [call for call in self.calls if call[0] == operation]

    def find_container(self, name):
        with self._lock:
            for container in self.containers.values():
                if container['name'] == name:
                    return self._to_record(container)
        return ContainerRecord(name=name)

    def list_records(self, labels=None):
        labels = labels or {}
        with self._lock:
            return [
                self._to_record(c) for c in self.containers.values()
                if all(c['labels'].get(k) == v for k, v in labels.items())
            ]

    def create_container(self, image, name=None, labels=None, **config):
        if self.before_create is not None:
            self.before_create(name)
        with self._lock:
            self.calls.append(('create', name))
            if name in self.fail_create:
                raise DockerServiceError(f"Failed to create container '{name}': boom")
            if any(c['name'] == name for c in self.containers.values()):
                raise DockerServiceError(f"Failed to create container '{name}': name in use")
            container_id = uuid.uuid4().hex * 2
            self.containers[container_id] = {
                'id': container_id,
                'name': name,
                'status': ContainerStatus.STOPPED,
                'image': image,
                'labels': dict(labels or {}),
                'config': dict(config, image=image, name=name),
            }
            return self._to_record(self.containers[container_id])

    def start_container(self, container_id):
        with self._lock:
            container = self._lookup(container_id)
            self.calls.append(('start', container['name']))
            if container['name'] in self.fail_start:
                raise DockerServiceError(f"Failed to start container '{container['name']}': boom")
            if container['name'] in self.start_errors:
                raise self.start_errors[container['name']]
            container['status'] = ContainerStatus.RUNNING

    def stop_container(self, container_id, grace_period=10):
        with self._lock:
            container = self._lookup(container_id)
            self.calls.append(('stop', container['name']))
            container['status'] = ContainerStatus.STOPPED

    def remove_container(self, container_id, force=False):
        with self._lock:
            container = self._lookup(container_id)
            self.calls.append(('remove', container['name']))
            del self.containers[container['id']]

    def exec_in_container(self, container_id, command, user=None, workdir=None, **kwargs):
        with self._lock:
            container = self._lookup(container_id)
            self.calls.append(('exec', container['name'], list(command) if not isinstance(command, str) else command))
            self.exec_options.append(dict(kwargs, user=user, workdir=workdir))
            return self.exec_results.get(container['name'], ExecResult(exit_code=0, output=""))

    def image_exists(self, image_name):
        return image_name in self.images

    def build_image(self, path, dockerfile, tag, rm=True, nocache=False):
        self.calls.append(('build', tag))
        self.images.add(tag)
        return MagicMock()


@pytest.fixture
def cli_runner():
    """Provides a Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def mock_docker_client():
    """Provides a mocked Docker client."""
    mock_client = MagicMock()
    mock_client.ping.return_value = True
    mock_client.containers.list.return_value = []
    mock_client.images.list.return_value = []
    return mock_client


@pytest.fixture
def fake_docker():
    """Provides an in-memory docker service."""
    return FakeDockerService()


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary home directory."""
    return Settings(home_dir=str(tmp_path / "home"))


@pytest.fixture(autouse=True)
def clean_reactor_env(monkeypatch):
    """Keep the caller's isolation prefix and timeout out of the tests."""
    monkeypatch.delenv("REACTOR_ISOLATION_PREFIX", raising=False)
    monkeypatch.delenv("REACTOR_DOCKER_TIMEOUT", raising=False)


@pytest.fixture
def make_project(tmp_path):
    """Factory creating a project directory with a devcontainer.json."""

    def _make(relative="project", config=None, root_file=False):
        project = tmp_path / relative
        project.mkdir(parents=True, exist_ok=True)
        data = {
            "name": relative,
            "image": "python:3.12",
            "customizations": {"reactor": {"account": "work"}},
        }
        data.update(config or {})
        if root_file:
            target = project / ".devcontainer.json"
        else:
            (project / ".devcontainer").mkdir(exist_ok=True)
            target = project / ".devcontainer" / "devcontainer.json"
        target.write_text(json.dumps(data, indent=2))
        return project

    return _make


@pytest.fixture
def make_workspace(tmp_path, make_project):
    """Factory writing reactor-workspace.yml for the given services.

    ``services`` maps service name to the devcontainer.json overrides of
    that service's project, created under ``tmp_path/<name>``.
    """

    def _make(services, file_name="reactor-workspace.yml", version="1"):
        entries = {}
        for name, config in services.items():
            make_project(name, config)
            entries[name] = {"path": f"./{name}"}
        path = tmp_path / file_name
        path.write_text(yaml.safe_dump({"version": version, "services": entries}))
        return path

    return _make


@pytest.fixture
def cli_docker(fake_docker):
    """Routes the CLI's DockerService construction to the in-memory fake."""
    with patch('reactor.cli.helpers.DockerService', return_value=fake_docker), \
            patch('reactor.core.container_runner.busy_host_ports', return_value=[]):
        yield fake_docker
