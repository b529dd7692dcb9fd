"""Tests for Docker service."""

from unittest.mock import Mock, MagicMock, patch
import pytest
import docker.errors
import requests.exceptions

from reactor.models.container import ContainerStatus
from reactor.services.docker_service import DockerService, container_to_record
from reactor.services.exceptions import (
    DaemonTimeoutError,
    DaemonUnavailableError,
    DockerServiceError,
    ImageNotFoundError,
    ContainerNotFoundError,
)


def make_container(name, status="running", container_id="abc123def4567890", labels=None, image="python:3.12"):
    container = Mock()
    container.id = container_id
    container.name = name
    container.status = status
    container.labels = labels or {}
    container.attrs = {"Config": {"Image": image}}
    return container


@pytest.fixture
def service(mock_docker_client):
    with patch('docker.from_env', return_value=mock_docker_client):
        yield DockerService()


class TestDockerServiceInit:
    """Test cases for DockerService connection handling."""

    @patch('docker.from_env')
    def test_init_success(self, mock_from_env):
        """Test successful initialization."""
        mock_client = Mock()
        mock_client.ping.return_value = None
        mock_from_env.return_value = mock_client

        service = DockerService(timeout=12)
        assert service.client == mock_client
        mock_from_env.assert_called_once_with(timeout=12)
        mock_client.ping.assert_called_once()

    @patch('docker.from_env')
    def test_init_docker_not_running(self, mock_from_env):
        """Test initialization when Docker is not running."""
        mock_from_env.side_effect = docker.errors.DockerException("connection refused")

        with pytest.raises(DaemonUnavailableError, match="Docker daemon is not running"):
            DockerService()

    @patch('docker.from_env')
    def test_init_connection_error_on_ping(self, mock_from_env):
        """Test initialization when the ping cannot reach the daemon."""
        mock_client = Mock()
        mock_client.ping.side_effect = requests.exceptions.ConnectionError("socket gone")
        mock_from_env.return_value = mock_client

        with pytest.raises(DaemonUnavailableError):
            DockerService()

    @patch('docker.from_env')
    def test_init_timeout(self, mock_from_env):
        """Test initialization when the daemon does not answer in time."""
        mock_client = Mock()
        mock_client.ping.side_effect = requests.exceptions.ReadTimeout("slow")
        mock_from_env.return_value = mock_client

        with pytest.raises(DaemonTimeoutError, match="within 5s"):
            DockerService(timeout=5)

    @patch('docker.from_env')
    def test_init_other_error(self, mock_from_env):
        """Test initialization with other Docker errors."""
        mock_from_env.side_effect = docker.errors.DockerException("Other error")

        with pytest.raises(DockerServiceError, match="Failed to connect to Docker"):
            DockerService()


class TestFindContainer:
    """Test cases for name-based container discovery."""

    def test_exact_match(self, service, mock_docker_client):
        """Test that only the exact name is returned."""
        mock_docker_client.containers.list.return_value = [
            make_container("reactor-work-app-abcd1234-old", container_id="other"),
            make_container("/reactor-work-app-abcd1234", status="exited"),
        ]

        record = service.find_container("reactor-work-app-abcd1234")

        assert record.status == ContainerStatus.STOPPED
        assert record.name == "reactor-work-app-abcd1234"
        assert record.id == "abc123def4567890"
        mock_docker_client.containers.list.assert_called_once_with(
            all=True, filters={'name': "reactor-work-app-abcd1234"}
        )

    def test_not_found(self, service, mock_docker_client):
        """Test that a missing container yields a NOT_FOUND record."""
        mock_docker_client.containers.list.return_value = [make_container("reactor-work-app-abcd1234-x")]

        record = service.find_container("reactor-work-app-abcd1234")

        assert record.status == ContainerStatus.NOT_FOUND
        assert not record.exists

    def test_timeout_is_reported_as_timeout(self, service, mock_docker_client):
        """Test that a hung daemon is distinguishable from a missing container."""
        mock_docker_client.containers.list.side_effect = requests.exceptions.ReadTimeout("read timed out")

        with pytest.raises(DaemonTimeoutError):
            service.find_container("anything")

    def test_api_error(self, service, mock_docker_client):
        """Test listing failure."""
        mock_docker_client.containers.list.side_effect = docker.errors.APIError("boom")

        with pytest.raises(DockerServiceError, match="Failed to list containers"):
            service.find_container("anything")


class TestListRecords:
    """Test cases for label-based listing."""

    def test_label_filter(self, service, mock_docker_client):
        """Test that every label becomes a filter entry."""
        mock_docker_client.containers.list.return_value = [
            make_container("a", labels={"x": "1", "y": "2"}),
        ]

        records = service.list_records({"x": "1", "y": "2"})

        assert [r.name for r in records] == ["a"]
        assert records[0].labels == {"x": "1", "y": "2"}
        mock_docker_client.containers.list.assert_called_once_with(
            all=True, filters={'label': ["x=1", "y=2"]}
        )


class TestContainerOperations:
    """Test cases for container create/start/stop/remove/exec."""

    def test_create_container(self, service, mock_docker_client):
        """Test successful container creation."""
        mock_docker_client.containers.create.return_value = make_container("web", status="created")

        record = service.create_container(
            image="python:3.12",
            name="web",
            command=["/bin/sh"],
            volumes=["/src:/workspace:rw"],
            labels={"a": "b"},
            tty=True,
        )

        assert record.status == ContainerStatus.STOPPED
        assert record.id == "abc123def4567890"
        kwargs = mock_docker_client.containers.create.call_args.kwargs
        assert kwargs['volumes'] == ["/src:/workspace:rw"]
        assert kwargs['labels'] == {"a": "b"}
        assert kwargs['tty'] is True

    def test_create_container_image_not_found(self, service, mock_docker_client):
        """Test container creation with missing image."""
        mock_docker_client.containers.create.side_effect = docker.errors.ImageNotFound("missing")

        with pytest.raises(ImageNotFoundError, match="Image 'nope' not found"):
            service.create_container(image="nope", name="web")

    def test_create_container_conflict(self, service, mock_docker_client):
        """Test container creation with a name already in use."""
        mock_docker_client.containers.create.side_effect = docker.errors.APIError("Conflict")

        with pytest.raises(DockerServiceError, match="Failed to create container 'web'"):
            service.create_container(image="img", name="web")

    def test_start_container(self, service, mock_docker_client):
        """Test starting a container."""
        container = make_container("web", status="exited")
        mock_docker_client.containers.get.return_value = container

        service.start_container("abc")

        container.start.assert_called_once()

    def test_start_container_not_found(self, service, mock_docker_client):
        """Test starting a container that does not exist."""
        mock_docker_client.containers.get.side_effect = docker.errors.NotFound("gone")

        with pytest.raises(ContainerNotFoundError):
            service.start_container("abc")

    def test_start_container_failure(self, service, mock_docker_client):
        """Test start failure."""
        container = make_container("web")
        container.start.side_effect = docker.errors.APIError("port is already allocated")
        mock_docker_client.containers.get.return_value = container

        with pytest.raises(DockerServiceError, match="port is already allocated"):
            service.start_container("abc")

    def test_start_container_lost_connection(self, service, mock_docker_client):
        """Test a connection drop during start."""
        container = make_container("web")
        container.start.side_effect = requests.exceptions.ConnectionError("reset")
        mock_docker_client.containers.get.return_value = container

        with pytest.raises(DaemonUnavailableError):
            service.start_container("abc")

    def test_stop_container_uses_grace_period(self, service, mock_docker_client):
        """Test stopping a container."""
        container = make_container("web")
        mock_docker_client.containers.get.return_value = container

        service.stop_container("abc", grace_period=3)

        container.stop.assert_called_once_with(timeout=3)

    def test_remove_container(self, service, mock_docker_client):
        """Test removing a container."""
        container = make_container("web")
        mock_docker_client.containers.get.return_value = container

        service.remove_container("abc", force=True)

        container.remove.assert_called_once_with(force=True)

    def test_remove_container_not_found(self, service, mock_docker_client):
        """Test removing a container that vanished after lookup."""
        container = make_container("web")
        container.remove.side_effect = docker.errors.NotFound("gone")
        mock_docker_client.containers.get.return_value = container

        with pytest.raises(ContainerNotFoundError):
            service.remove_container("abc")

    def test_exec_in_container(self, service, mock_docker_client):
        """Test command execution with output decoding."""
        container = make_container("web")
        container.exec_run.return_value = Mock(exit_code=3, output=b"oops\n")
        mock_docker_client.containers.get.return_value = container

        result = service.exec_in_container("abc", ["make", "test"], user="node")

        assert result.exit_code == 3
        assert result.output == "oops\n"
        container.exec_run.assert_called_once_with(["make", "test"], user="node")

    def test_exec_in_container_omits_empty_user(self, service, mock_docker_client):
        """Test that no user argument is sent when none is given."""
        container = make_container("web")
        container.exec_run.return_value = Mock(exit_code=0, output=b"")
        mock_docker_client.containers.get.return_value = container

        service.exec_in_container("abc", "true")

        container.exec_run.assert_called_once_with("true")

    def test_exec_in_container_with_longer_timeout(self, mock_docker_client):
        """Test that a longer deadline goes through its own client."""
        long_client = MagicMock()
        container = make_container("web")
        container.exec_run.return_value = Mock(exit_code=0, output=b"done")
        long_client.containers.get.return_value = container

        with patch('docker.from_env', side_effect=[mock_docker_client, long_client]) as mock_from_env:
            service = DockerService(timeout=30)
            result = service.exec_in_container("abc", ["npm", "ci"], timeout=1800)
            service.exec_in_container("abc", ["npm", "test"], timeout=1800)

        assert result.output == "done"
        assert mock_from_env.call_args_list[1].kwargs == {'timeout': 1800}
        assert mock_from_env.call_count == 2
        mock_docker_client.containers.get.assert_not_called()

    def test_exec_in_container_same_timeout_reuses_client(self, service, mock_docker_client):
        """Test that the default deadline uses the shared client."""
        assert service.client_with_timeout(service.timeout) is mock_docker_client
        assert service.client_with_timeout() is mock_docker_client


class TestImages:
    """Test cases for image helpers."""

    def test_image_exists(self, service, mock_docker_client):
        """Test checking if image exists."""
        assert service.image_exists("python:3.12") is True

    def test_image_does_not_exist(self, service, mock_docker_client):
        """Test checking for a missing image."""
        mock_docker_client.images.get.side_effect = docker.errors.ImageNotFound("missing")
        assert service.image_exists("python:3.12") is False

    def test_image_exists_timeout(self, service, mock_docker_client):
        """Test that a timeout is not mistaken for a missing image."""
        mock_docker_client.images.get.side_effect = requests.exceptions.ReadTimeout("slow")
        with pytest.raises(DaemonTimeoutError):
            service.image_exists("python:3.12")

    def test_build_image_success(self, service, mock_docker_client):
        """Test successful image build."""
        mock_image = Mock()
        mock_logs = [{"stream": "Step 1/2\n"}, {"aux": {"ID": "sha256:1"}}]
        mock_docker_client.images.build.return_value = (mock_image, iter(mock_logs))

        image = service.build_image(path="/ctx", dockerfile="Dockerfile", tag="reactor-build:abcd1234")

        assert image == mock_image
        kwargs = mock_docker_client.images.build.call_args.kwargs
        assert kwargs['path'] == "/ctx"
        assert kwargs['tag'] == "reactor-build:abcd1234"
        assert kwargs['nocache'] is False

    def test_build_image_failure(self, service, mock_docker_client):
        """Test image build failure."""
        mock_docker_client.images.build.side_effect = docker.errors.BuildError("Build failed", [])

        with pytest.raises(DockerServiceError, match="Failed to build image"):
            service.build_image(path="/ctx", dockerfile="Dockerfile", tag="t")


class TestContainerToRecord:
    """Test cases for container_to_record."""

    @pytest.mark.parametrize("state,expected", [
        ("running", ContainerStatus.RUNNING),
        ("restarting", ContainerStatus.RUNNING),
        ("exited", ContainerStatus.STOPPED),
        ("created", ContainerStatus.STOPPED),
        ("paused", ContainerStatus.STOPPED),
        ("dead", ContainerStatus.STOPPED),
    ])
    def test_status_mapping(self, state, expected):
        assert container_to_record(make_container("c", status=state)).status == expected

    def test_image_from_config(self):
        record = container_to_record(make_container("c", image="node:20"))
        assert record.image == "node:20"

    def test_missing_attrs(self):
        container = MagicMock()
        container.id = "id"
        container.name = "c"
        container.status = "exited"
        container.labels = None
        container.attrs = {}
        record = container_to_record(container)
        assert record.image == ""
        assert record.labels == {}
