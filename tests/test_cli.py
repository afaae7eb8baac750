from click.testing import CliRunner

from jobchain.cli import cli


def test_run_succeeds(workdir, events):
    result = CliRunner().invoke(cli, ["run", "sample_jobs.ChainJob", "--local", "--length", "2"])

    assert result.exit_code == 0, result.output
    assert "RUN STARTED" in result.output
    assert "Mode: local" in result.output
    assert "CHAIN COMPLETE: 2 job(s)" in result.output


def test_engine_options_pass_through_untouched(workdir, events):
    result = CliRunner().invoke(
        cli, ["run", "-D", "a=b", "sample_jobs.ChainJob", "--tool.graph"]
    )

    assert result.exit_code == 0, result.output
    assert (workdir / "sample_jobs.ChainJob0.dot").exists()
    assert events == [("clear", 0)]


def test_failed_chain_exits_with_error(workdir, events):
    result = CliRunner().invoke(cli, ["run", "sample_jobs.ChainJob", "--fail-at", "0"])

    assert result.exit_code == 1
    assert "ERROR: JobFailedError" in result.output
    assert "Job failed to run: sample_jobs.ChainJob" in result.output


def test_missing_job_prints_usage():
    result = CliRunner().invoke(cli, ["run"])

    assert result.exit_code == 1
    assert "Usage: jobchain <jobClass>" in result.output


def test_debug_prints_traceback(workdir, events):
    result = CliRunner().invoke(cli, ["--debug", "run", "sample_jobs.ChainJob", "--fail-at", "0"])

    assert result.exit_code == 1
    assert "Traceback" in result.output
