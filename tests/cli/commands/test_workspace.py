from pathlib import Path
from unittest.mock import patch

import pytest

from reactor.cli.main import cli
from reactor.core.naming import project_hash
from reactor.models.container import ExecResult


@pytest.fixture
def workspace_file(make_workspace):
    return make_workspace({
        "api": {"forwardPorts": [8080]},
        "web": {"forwardPorts": ["3000:3000"]},
    })


def ws_container(workspace_file, service):
    return f"reactor-ws-{service}-{project_hash(str(Path(workspace_file).parent / service))}"


class TestWorkspaceValidate:
    """Smoke tests for workspace validate."""

    @patch('reactor.cli.helpers.DockerService')
    def test_validate_never_connects(self, mock_docker_service_class, cli_runner, workspace_file):
        """Test that validation works without a daemon."""
        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'validate'])

        assert result.exit_code == 0, result.output
        assert "All 2 service(s) completed 'validate' successfully" in result.output
        mock_docker_service_class.assert_not_called()

    def test_validate_port_conflict(self, cli_runner, make_workspace):
        """Test that a port conflict fails validation."""
        path = make_workspace({"api": {"forwardPorts": [8080]}, "web": {"forwardPorts": [8080]}})

        result = cli_runner.invoke(cli, ['workspace', '-f', str(path), 'validate'])

        assert result.exit_code == 1
        assert "port 8080 used by services: api, web" in result.output

    def test_validate_directory_option(self, cli_runner, workspace_file):
        """Test that --file accepts the workspace directory."""
        result = cli_runner.invoke(cli, ['workspace', '-f', str(Path(workspace_file).parent), 'validate'])
        assert result.exit_code == 0

    def test_validate_missing_file(self, cli_runner, tmp_path):
        """Test a missing workspace file."""
        result = cli_runner.invoke(cli, ['workspace', '-f', str(tmp_path / "nope.yml"), 'validate'])

        assert result.exit_code == 1
        assert "workspace file not found" in result.output

    def test_validate_current_directory(self, cli_runner, workspace_file, monkeypatch):
        """Test discovery of the workspace file in the current directory."""
        monkeypatch.chdir(Path(workspace_file).parent)
        result = cli_runner.invoke(cli, ['workspace', 'validate'])
        assert result.exit_code == 0

    def test_validate_no_file_in_directory(self, cli_runner, tmp_path, monkeypatch):
        """Test running outside a workspace."""
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ['workspace', 'validate'])

        assert result.exit_code == 1
        assert "no reactor-workspace.yml or reactor-workspace.yaml found" in result.output


class TestWorkspaceUpDown:
    """Smoke tests for workspace up and down."""

    def test_up_all(self, cli_runner, cli_docker, workspace_file):
        """Test starting every service."""
        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'up'])

        assert result.exit_code == 0, result.output
        assert "All 2 service(s) completed 'up' successfully" in result.output
        assert cli_docker.names() == sorted([
            ws_container(workspace_file, "api"),
            ws_container(workspace_file, "web"),
        ])

    def test_up_selected_with_ports_and_tags(self, cli_runner, cli_docker, workspace_file):
        """Test per-service ports and tags."""
        result = cli_runner.invoke(cli, [
            'workspace', '-f', str(workspace_file), 'up', 'api',
            '-p', 'api:9090:90', '--tag', 'team=core',
        ])

        assert result.exit_code == 0, result.output
        assert "9090->90" in result.output
        assert cli_docker.names() == [ws_container(workspace_file, "api")]
        assert cli_docker.list_records({"team": "core"})

    def test_up_port_without_service(self, cli_runner, cli_docker, workspace_file):
        """Test a port flag missing the service name."""
        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'up', '-p', ':1:1'])

        assert result.exit_code == 1
        assert "expected format service:host_port:container_port" in result.output

    def test_up_unknown_service(self, cli_runner, cli_docker, workspace_file):
        """Test selecting a service that does not exist."""
        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'up', 'db'])

        assert result.exit_code == 1
        assert "service(s) not found in workspace: db" in result.output
        assert cli_docker.calls == []

    def test_up_partial_failure(self, cli_runner, cli_docker, workspace_file):
        """Test that one failing service fails the command but not its sibling."""
        cli_docker.fail_create.add(ws_container(workspace_file, "web"))

        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'up'])

        assert result.exit_code == 1
        assert "1 of 2 service(s) failed 'up'" in result.output
        assert cli_docker.names() == [ws_container(workspace_file, "api")]

    def test_down_all(self, cli_runner, cli_docker, workspace_file):
        """Test stopping every service."""
        cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'up'])

        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'down'])

        assert result.exit_code == 0
        assert "removed" in result.output
        assert cli_docker.names() == []

    def test_down_twice(self, cli_runner, cli_docker, workspace_file):
        """Test that down is idempotent."""
        cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'down'])
        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'down'])

        assert result.exit_code == 0
        assert "absent" in result.output


class TestWorkspaceListAndExec:
    """Smoke tests for workspace list and exec."""

    def test_list(self, cli_runner, cli_docker, workspace_file):
        """Test the status table."""
        cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'up', 'api'])

        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'list'])

        assert result.exit_code == 0, result.output
        assert "Services: 2" in result.output
        assert "running" in result.output
        assert "not found" in result.output
        assert "Workspace Hash:" in result.output

    def test_exec(self, cli_runner, cli_docker, workspace_file):
        """Test running a command in a service."""
        cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'up'])
        cli_docker.exec_results[ws_container(workspace_file, "api")] = ExecResult(exit_code=0, output="ok\n")

        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'exec', 'api', '--', 'ls', '-la'])

        assert result.exit_code == 0, result.output
        assert "ok" in result.output
        assert cli_docker.calls_for('exec')[-1][2] == ['ls', '-la']

    def test_exec_propagates_exit_code(self, cli_runner, cli_docker, workspace_file):
        """Test that the command's exit code becomes the CLI's."""
        cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'up'])
        cli_docker.exec_results[ws_container(workspace_file, "web")] = ExecResult(exit_code=7, output="")

        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'exec', 'web', 'false'])

        assert result.exit_code == 7

    def test_exec_not_started(self, cli_runner, cli_docker, workspace_file):
        """Test exec before the service is up."""
        result = cli_runner.invoke(cli, ['workspace', '-f', str(workspace_file), 'exec', 'api', 'true'])

        assert result.exit_code == 1
        assert "start it first with 'reactor workspace up'" in result.output
