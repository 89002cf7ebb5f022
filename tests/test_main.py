"""Tests for the command line entry point and invocation aliases."""

import pytest

from kerninst import main as main_module
from kerninst.domain.models import Stage
from kerninst.system.exceptions import ConfigurationError, ExternalStepFailure


@pytest.fixture
def cli(mocker, config, ctx):
    """Patch configuration, version resolution and the pipeline."""
    load_config = mocker.patch("kerninst.main.load_config", return_value=config)
    mocker.patch("kerninst.main.resolve_version_context", return_value=ctx)
    pipeline_class = mocker.patch("kerninst.main.Pipeline")
    return load_config, pipeline_class


class TestArgumentParsing:
    def test_invalid_command(self, cli):
        with pytest.raises(SystemExit) as excinfo:
            main_module.main(["frobnicate"], prog="kerninst")

        assert excinfo.value.code != 0

    def test_alias_takes_no_command_word(self, cli):
        with pytest.raises(SystemExit) as excinfo:
            main_module.main(["compile"], prog="kerninst-install")

        assert excinfo.value.code != 0

    def test_every_stage_has_an_alias(self):
        for stage in Stage:
            assert main_module.ALIASES[f"kerninst-{stage.value}"] is stage


class TestDispatch:
    def test_no_command_runs_full_pipeline(self, cli):
        _, pipeline_class = cli

        assert main_module.main([], prog="kerninst") == 0

        pipeline_class.return_value.run_all.assert_called_once_with()
        pipeline_class.return_value.run_stage.assert_not_called()

    @pytest.mark.parametrize("stage", list(Stage))
    def test_command_word(self, cli, stage):
        _, pipeline_class = cli

        assert main_module.main([stage.value], prog="kerninst") == 0

        pipeline_class.return_value.run_stage.assert_called_once_with(stage)

    @pytest.mark.parametrize("stage", list(Stage))
    def test_invocation_alias(self, cli, stage):
        _, pipeline_class = cli

        assert main_module.main([], prog=f"kerninst-{stage.value}") == 0

        pipeline_class.return_value.run_stage.assert_called_once_with(stage)

    def test_alias_from_argv0(self, cli, mocker):
        _, pipeline_class = cli
        mocker.patch.object(main_module.sys, "argv", ["/usr/bin/kerninst-clean"])

        assert main_module.main([]) == 0

        pipeline_class.return_value.run_stage.assert_called_once_with(Stage.CLEAN)

    def test_unknown_program_name_runs_full_pipeline(self, cli):
        _, pipeline_class = cli

        assert main_module.main([], prog="python -m kerninst") == 0

        pipeline_class.return_value.run_all.assert_called_once_with()


class TestOverrides:
    def test_no_modules(self, cli):
        _, pipeline_class = cli

        main_module.main(["--no-modules"], prog="kerninst")

        config = pipeline_class.call_args.args[0]
        assert config.modules_rebuild is False

    def test_flags_default_to_config_file(self, cli, config):
        load_config, pipeline_class = cli

        main_module.main(["-c", "/tmp/kerninst.conf"], prog="kerninst")

        assert str(load_config.call_args.args[0]) == "/tmp/kerninst.conf"
        passed = pipeline_class.call_args.args[0]
        assert passed.modules_rebuild is config.modules_rebuild
        assert passed.update_kernel_config is config.update_kernel_config

    def test_update_config(self, cli):
        _, pipeline_class = cli

        main_module.main(["newconfig", "--update-config"], prog="kerninst")

        assert pipeline_class.call_args.args[0].update_kernel_config is True


class TestFailures:
    def test_stage_failure_returns_1_and_is_logged(self, cli, config):
        _, pipeline_class = cli
        pipeline_class.return_value.run_all.side_effect = ExternalStepFailure(
            "install", ["make", "install"], 2, "installkernel: no space left"
        )

        assert main_module.main([], prog="kerninst") == 1

        content = config.log_file.read_text()
        assert "install failed" in content
        assert "not rolled back" in content

    def test_version_resolution_failure(self, cli, mocker):
        _, pipeline_class = cli
        mocker.patch(
            "kerninst.main.resolve_version_context",
            side_effect=ConfigurationError("The symbolic link /usr/src/linux does not exist"),
        )

        assert main_module.main([], prog="kerninst") == 1
        pipeline_class.assert_not_called()

    def test_configuration_failure(self, mocker):
        mocker.patch(
            "kerninst.main.load_config",
            side_effect=ConfigurationError("Invalid boot manager 'lilo'"),
        )

        assert main_module.main([], prog="kerninst") == 1
