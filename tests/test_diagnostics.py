import pytest

from jobchain.diagnostics import (
    CONTRIBUTE_HINT,
    DEFAULT_MAPPING,
    ExceptionRegistry,
    enrich,
    iter_causes,
    main,
)
from jobchain.errors import EnrichedFailure, JobFailedError, UsageError, ValidationError
from jobchain.tool import Tool

DOCS = "https://docs.example/errors"


def _chained(outer: BaseException, inner: BaseException) -> BaseException:
    try:
        try:
            raise inner
        except BaseException as e:
            raise outer from e
    except BaseException as e:
        return e


def test_claimed_failure_gets_remediation_hint_and_link():
    registry = ExceptionRegistry(docs_url=DOCS)
    error = UsageError("Usage: jobchain <jobClass>")

    failure = enrich(error, registry)

    assert isinstance(failure, EnrichedFailure)
    assert failure.__cause__ is error
    assert str(failure) == (
        DEFAULT_MAPPING[UsageError] + "\n"
        + CONTRIBUTE_HINT + "\n"
        + DOCS + "#jobchainerrorsusageerror"
    )


def test_unclaimed_failure_only_gets_hint_and_link():
    registry = ExceptionRegistry(docs_url=DOCS)

    failure = enrich(KeyError("x"), registry)

    assert str(failure) == f"{CONTRIBUTE_HINT}\n{DOCS}#builtinskeyerror"


def test_lookup_peels_through_the_cause_chain():
    registry = ExceptionRegistry(docs_url=DOCS)
    error = _chained(RuntimeError("wrapper"), JobFailedError(root="a.B", index=0, failing="a.B"))

    assert [type(e) for e in iter_causes(error)] == [RuntimeError, JobFailedError]
    assert registry.peel_until_mappable(error) is JobFailedError
    assert registry.is_claimed(error)
    assert str(enrich(error, registry)).startswith(DEFAULT_MAPPING[JobFailedError])


def test_unmapped_chain_links_to_the_innermost_failure():
    registry = ExceptionRegistry(docs_url=DOCS)
    error = _chained(RuntimeError("outer"), LookupError("inner"))

    assert registry.peel_until_mappable(error) is LookupError
    assert registry.create_x_url(error) == f"{DOCS}#builtinslookuperror"


def test_custom_handlers_and_link_builder():
    registry = ExceptionRegistry(
        mapping={ValueError: "Check the input values."},
        handlers=[lambda exc: "retry" in str(exc)],
        link_builder=lambda exc: f"https://wiki/{type(exc).__name__}",
    )

    claimed = enrich(ValueError("please retry"), registry)
    unclaimed = enrich(ValueError("bad"), registry)

    assert str(claimed) == f"Check the input values.\n{CONTRIBUTE_HINT}\nhttps://wiki/ValueError"
    assert str(unclaimed) == f"{CONTRIBUTE_HINT}\nhttps://wiki/ValueError"


def test_main_returns_zero_on_success(mocker):
    tool = Tool()
    mocker.patch.object(tool, "run", return_value=0)

    assert main(["sample_jobs.ChainJob"], tool=tool) == 0
    tool.run.assert_called_once_with(["sample_jobs.ChainJob"])


def test_main_enriches_driver_failures(workdir, events):
    with pytest.raises(EnrichedFailure) as excinfo:
        main(["sample_jobs.ChainJob", "--fail-at", "0"], tool=Tool())

    cause = excinfo.value.__cause__
    assert isinstance(cause, JobFailedError)
    assert str(cause) == "Job failed to run: sample_jobs.ChainJob"
    assert "#jobchainerrorsjobfailederror" in str(excinfo.value)


def test_main_enriches_unknown_job_class():
    with pytest.raises(EnrichedFailure) as excinfo:
        main(["no_such_package.SomeJob"], tool=Tool())

    assert isinstance(excinfo.value.__cause__, ModuleNotFoundError)
    assert DEFAULT_MAPPING[ModuleNotFoundError] in str(excinfo.value)


def test_main_enriches_broken_graph_in_graph_mode(workdir, events):
    with pytest.raises(EnrichedFailure) as excinfo:
        main(["sample_jobs.InvalidJob", "--tool.graph"], tool=Tool())

    assert isinstance(excinfo.value.__cause__, ValidationError)
    assert str(excinfo.value).startswith(DEFAULT_MAPPING[ValidationError])
