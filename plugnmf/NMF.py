from plugnmf._checks import check_data, check_factors, check_rank
from plugnmf.convergence import DefaultConvergenceTester
from plugnmf.initializers import RandomInitializer
from plugnmf.params import NMFParams
from plugnmf.progress import NullProgressReporter
from plugnmf.updaters import FastHALSUpdater, GCDUpdater, HALSUpdater, MUUpdater, NullUpdater


def factorize(
    X,
    r,
    U=None,
    V=None,
    initializer=None,
    updater=None,
    convergence_tester=None,
    progress_reporter=None,
):
    """
    Non-negative matrix factorization X ~ UV, X: n x m, U: n x r, V: r x m.

    The initializer runs once, then the loop applies one update, asks the
    convergence tester whether to stop and reports the state, until the
    tester says stop. The tester is also asked once before the first update,
    so a zero iteration budget leaves the initial factors as they are. The
    reporter sees the initial state as iteration 0 and every updated state
    after it.

    Parameters:
    X : array-like, n-by-m, non-negative and finite
    r : int, factorization rank
    U, V : optional preallocated factors, overwritten in place when their
        shapes match (see Initializer)
    initializer : Initializer (default: RandomInitializer)
    updater : Updater (default: NullUpdater)
    convergence_tester : ConvergenceTester (default: DefaultConvergenceTester)
    progress_reporter : ProgressReporter (default: NullProgressReporter)

    Returns:
    U, V : the factors after the last update

    Raises ValueError when X is not a finite non-negative matrix, r is not a
    positive integer or the initializer hands back factors of the wrong shape.
    """
    X = check_data(X, "NMF")
    r = check_rank(r, "NMF")
    if initializer is None:
        initializer = RandomInitializer()
    if updater is None:
        updater = NullUpdater()
    if convergence_tester is None:
        convergence_tester = DefaultConvergenceTester()
    if progress_reporter is None:
        progress_reporter = NullProgressReporter()

    U, V = initializer.initialize(X, r, U, V)
    if check_factors(X, U, V, "NMF") != r:
        raise ValueError(f"Initializer returned factors of rank {U.shape[1]}, expected {r}.")

    loop_count = 0
    progress_reporter.initialize()
    progress_reporter.report(X, U, V, loop_count)
    converged = convergence_tester.is_converged(X, U, V, loop_count)
    while not converged:
        updater.update(X, U, V)
        loop_count += 1
        converged = convergence_tester.is_converged(X, U, V, loop_count)
        progress_reporter.report(X, U, V, loop_count)
    return U, V


def _factorize_with(updater, X, r, U, V, params, initializer, progress_reporter):
    if params is None:
        params = NMFParams()
    if initializer is None:
        initializer = params.make_initializer()
    if progress_reporter is None:
        progress_reporter = params.make_progress_reporter()
    return factorize(
        X,
        r,
        U,
        V,
        initializer=initializer,
        updater=updater,
        convergence_tester=params.make_convergence_tester(),
        progress_reporter=progress_reporter,
    )


def factorize_with_MU(X, r, U=None, V=None, params=None, initializer=None, progress_reporter=None):
    return _factorize_with(MUUpdater(), X, r, U, V, params, initializer, progress_reporter)


def factorize_with_HALS(X, r, U=None, V=None, params=None, initializer=None, progress_reporter=None):
    return _factorize_with(HALSUpdater(), X, r, U, V, params, initializer, progress_reporter)


def factorize_with_FastHALS(
    X, r, U=None, V=None, params=None, initializer=None, progress_reporter=None
):
    if params is None:
        params = NMFParams()
    return _factorize_with(
        FastHALSUpdater(eps=params.fast_hals_eps), X, r, U, V, params, initializer, progress_reporter
    )


def factorize_with_GCD(X, r, U=None, V=None, params=None, initializer=None, progress_reporter=None):
    if params is None:
        params = NMFParams()
    updater = GCDUpdater(inner_loops=params.gcd_inner_loops, tol=params.gcd_tol)
    return _factorize_with(updater, X, r, U, V, params, initializer, progress_reporter)
