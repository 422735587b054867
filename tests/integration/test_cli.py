import pytest
from click.testing import CliRunner
from devpush.CLI.main import cli
from devpush.PARSERS.env_parser import ENV_FILE_PATH
from devpush.UTILS.settings import Settings

DEVFILE = """
schemaVersion: 2.0.0
metadata:
  name: nodejs
components:
  - container:
      name: runtime
      image: node:18
      endpoints:
        - name: http
          targetPort: 3000
commands:
  - exec:
      id: install
      component: runtime
      commandLine: npm install
      group: {kind: build, isDefault: true}
  - exec:
      id: start
      component: runtime
      commandLine: npm start
      group: {kind: run, isDefault: true}
"""


@pytest.fixture
def context_dir(tmp_path):
    (tmp_path / "devfile.yaml").write_text(DEVFILE)
    return tmp_path


def _obj(client):
    return {'client': client, 'settings': Settings()}


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    assert 'push devfile components' in result.output


def test_cli_push_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['push', '--help'])
    assert result.exit_code == 0
    assert '--run-command' in result.output


def test_cli_push_no_devfile(tmp_path, fake_client):
    runner = CliRunner()
    result = runner.invoke(cli, ['-c', str(tmp_path), 'push'], obj=_obj(fake_client))
    assert result.exit_code == 1
    assert 'Error: Unable to read devfile' in result.output


def test_cli_push(context_dir, fake_client):
    runner = CliRunner()
    result = runner.invoke(cli, ['-c', str(context_dir), 'push'], obj=_obj(fake_client))
    assert result.exit_code == 0, result.output
    assert 'runtime' in result.output
    assert 'created' in result.output
    assert 'Changes successfully pushed to component: nodejs' in result.output

    result = runner.invoke(cli, ['-c', str(context_dir), 'push'], obj=_obj(fake_client))
    assert result.exit_code == 0, result.output
    assert 'unchanged' in result.output


def test_cli_push_name_and_urls(context_dir, fake_client):
    env_file = context_dir / ENV_FILE_PATH
    env_file.parent.mkdir(parents=True)
    env_file.write_text("componentSettings:\n  url:\n    - {name: app, port: 3000, exposedPort: 20001}\n")
    runner = CliRunner()
    result = runner.invoke(cli, ['-c', str(context_dir), '-n', 'web', 'push'], obj=_obj(fake_client))
    assert result.exit_code == 0, result.output
    assert 'Changes successfully pushed to component: web' in result.output
    (config, _), = [item for item in fake_client.containers.values() if item[0].labels.get('alias') == 'runtime']
    assert config.labels['component'] == 'web'
    assert config.port_binding_set() == {(3000, '127.0.0.1', 20001)}


def test_cli_push_unknown_command(context_dir, fake_client):
    runner = CliRunner()
    result = runner.invoke(cli, ['-c', str(context_dir), 'push', '--build-command', 'compile'], obj=_obj(fake_client))
    assert result.exit_code == 1
    assert 'compile' in result.output


def test_cli_push_failing_command(context_dir, fake_client):
    fake_client.failing.add('npm install')
    runner = CliRunner()
    result = runner.invoke(cli, ['-c', str(context_dir), 'push'], obj=_obj(fake_client))
    assert result.exit_code == 1
    assert 'Command install failed with exit code 1' in result.output


def test_cli_ps(context_dir, fake_client):
    runner = CliRunner()
    runner.invoke(cli, ['-c', str(context_dir), 'push'], obj=_obj(fake_client))
    result = runner.invoke(cli, ['-c', str(context_dir), 'ps'], obj=_obj(fake_client))
    assert result.exit_code == 0
    assert 'CONTAINER' in result.output
    assert 'runtime' in result.output


def test_cli_ps_malformed_env_file(context_dir, fake_client):
    env_file = context_dir / ENV_FILE_PATH
    env_file.parent.mkdir(parents=True)
    env_file.write_text("componentSettings: [\n")
    runner = CliRunner()
    result = runner.invoke(cli, ['-c', str(context_dir), 'ps'], obj=_obj(fake_client))
    assert result.exit_code == 1
    assert 'Error: env.yaml is not valid YAML' in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
