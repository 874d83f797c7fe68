import pytest

from plugnmf.convergence import DefaultConvergenceTester
from plugnmf.initializers import NNDSVDInitializer, RandomInitializer
from plugnmf.params import NMFParams
from plugnmf.progress import DefaultProgressReporter, NullProgressReporter


def test_defaults():
    params = NMFParams()
    assert params.max_loop_count == 100
    assert params.eps == 1e-7
    assert params.fast_hals_eps == 1e-8
    assert params.init == "random"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_loop_count": -1},
        {"fast_hals_eps": -1e-8},
        {"gcd_inner_loops": 0},
        {"gcd_tol": -0.1},
        {"init": "svd"},
    ],
)
def test_invalid_params(kwargs):
    with pytest.raises(ValueError):
        NMFParams(**kwargs)


def test_policy_factories():
    params = NMFParams(max_loop_count=12, eps=1e-3, init="nndsvd", rngseed=3)
    tester = params.make_convergence_tester()
    assert isinstance(tester, DefaultConvergenceTester)
    assert (tester.max_loop_count, tester.eps) == (12, 1e-3)
    initializer = params.make_initializer()
    assert isinstance(initializer, NNDSVDInitializer)
    assert initializer.random_state == 3
    assert isinstance(NMFParams(rngseed=4).make_initializer(), RandomInitializer)
    assert isinstance(params.make_progress_reporter(), NullProgressReporter)
    reporter = NMFParams(display=True).make_progress_reporter()
    assert isinstance(reporter, DefaultProgressReporter) and reporter.display
