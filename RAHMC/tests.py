"""
Test suite for RA-HMC implementation.

Compares the conformal leapfrog integrator against its analytical solution
for a simple harmonic oscillator, checks the friction schedules, and runs
the transition kernel on small Gaussian targets.
"""

import logging
import jax
import jax.numpy as jnp
import jax.random as jr
import numpy as np
import pytest
from datatypes import QP, RAHMCConfig, ProposalEvent, DecisionEvent
from config import ConfigError, validate_config
from chain import Chain
from events import EventQueue
from friction import (
    split_friction, sigmoid_friction, sigmoid_gamma, friction_schedule,
    time_reversed, get_schedule,
)
from hamiltonian import rahmc_hamiltonian
from integrator import lf_step, conformal_lf_step, conformal_integrate, lf_integrate
from metrics import cov, maxdiagdiff, compute_accept_rate
from sampler import accept_reject, gen_rahmc_kernel, rahmc_sampler, RAHMCSampler
from algorithms import ALGORITHMS, make_sampler
from target import TargetModel, gen_gaussian, gen_perturb_precision, gen_gaussian_mixture
from vector_ops import DimensionError, copy, scale, increment, norm2
from logging_utils import setup_logging
from rich.logging import RichHandler

# Enable 64-bit precision
jax.config.update("jax_enable_x64", True)


def fixed_momentum(value):
    return lambda key, dim: jnp.full((dim,), value, dtype=jnp.float64)

def fixed_uniform(u):
    return lambda key: jnp.asarray(u, dtype=jnp.float64)


# ============================================================================
# Analytical Solutions
# ============================================================================

def leapfrog_analytic(x: np.ndarray, tau: float) -> np.ndarray:
    """
    Analytical kick-drift-kick step for simple harmonic oscillator
    """
    LF_step = np.array([
        [1 - tau**2/2, tau],
        [-tau + tau**3/4, 1 - tau**2/2]
    ])
    return LF_step @ x


def conformal_leapfrog_analytic(x: np.ndarray, tau: float, gamma: float) -> np.ndarray:
    """
    Friction scaling on p before and after the leapfrog step
    """
    s = np.exp(-gamma * tau / 2)
    S = np.diag([1.0, s])
    return S @ (leapfrog_analytic(S @ x, tau))


# ============================================================================
# Vector ops, targets, Hamiltonian
# ============================================================================

def test_vector_ops():
    v = jnp.array([1.0, -2.0, 2.0])
    w = copy(v)
    assert w is not v
    assert np.allclose(scale(v, 0.5), [0.5, -1.0, 1.0])
    assert np.allclose(increment(v, jnp.ones(3)), [2.0, -1.0, 3.0])
    assert np.allclose(v, [1.0, -2.0, 2.0])
    assert float(norm2(v)) == pytest.approx(9.0)


def test_gaussian_target_gradient():
    prec = gen_perturb_precision(dim=3, perturbation=0.2)
    target = gen_gaussian(precision_matrix=prec, mean=jnp.array([1.0, 0.0, -1.0]))
    q = jnp.array([0.3, -0.7, 1.1])
    assert target.dim == 3
    assert np.allclose(target.grad_log_density(q), jax.grad(target.log_density)(q))

    with pytest.raises(ValueError):
        gen_gaussian(precision_matrix=prec, cov=prec)


def test_gaussian_mixture_target():
    target = gen_gaussian_mixture(jnp.array([[-3.0, 0.0], [3.0, 0.0]]), sigma=0.5)
    assert target.dim == 2
    # symmetric modes
    assert float(target.log_density(jnp.array([-3.0, 0.0]))) == pytest.approx(
        float(target.log_density(jnp.array([3.0, 0.0])))
    )
    assert np.allclose(target.grad_log_density(jnp.array([3.0, 0.0])), 0.0, atol=1e-8)


def test_hamiltonian_energy():
    H = rahmc_hamiltonian(gen_gaussian(dim=2))
    qp = QP(q=jnp.array([1.0, 1.0]), p=jnp.array([0.0, 2.0]))
    # U = 1, K = 2
    assert float(H.energy(qp)) == pytest.approx(3.0)
    assert float(H.energy(qp.flip())) == pytest.approx(3.0)


# ============================================================================
# Integrator
# ============================================================================

def test_leapfrog():
    """Test leapfrog integrator against analytical solution"""
    tau = 0.1
    target = gen_gaussian(dim=1)
    x0 = jr.normal(jr.PRNGKey(1), shape=(2,))
    
    x_lf = lf_step(QP.from_array(x0), target.grad_log_density, tau).to_array()
    x_analytic = leapfrog_analytic(np.array(x0), tau)
    
    print(f"\nLeapfrog (numerical): {x_lf}")
    print(f"Leapfrog (analytic) : {x_analytic}")
    assert np.allclose(x_lf, x_analytic, atol=1e-12), "Leapfrog test failed!"


@pytest.mark.parametrize("gamma", [-0.5, 0.0, 0.5, 2.0])
def test_conformal_leapfrog(gamma):
    """Test conformal leapfrog against analytical solution"""
    tau = 0.1
    target = gen_gaussian(dim=1)
    x0 = jr.normal(jr.PRNGKey(7), shape=(2,))

    x_c = conformal_lf_step(QP.from_array(x0), target.grad_log_density, gamma, tau).to_array()
    x_analytic = conformal_leapfrog_analytic(np.array(x0), tau, gamma)
    assert np.allclose(x_c, x_analytic, atol=1e-12)


@pytest.mark.parametrize("friction", [split_friction, sigmoid_friction])
def test_zero_friction_is_plain_leapfrog(friction):
    """With gamma = 0 both schedules reduce to ordinary leapfrog"""
    config = RAHMCConfig(leapfrog_steps=25, dt=0.15, gamma=0.0)
    target = gen_gaussian(precision_matrix=gen_perturb_precision(dim=2, perturbation=0.3))
    qp0 = QP(q=jnp.array([0.5, -1.0]), p=jnp.array([1.2, 0.3]))

    gammas = friction_schedule(friction, config)
    assert np.all(gammas == 0.0)

    qp_c, traj_c = conformal_integrate(qp0, target.grad_log_density, gammas, config.dt)
    qp_lf, traj_lf = lf_integrate(qp0, target.grad_log_density, config.dt, config.leapfrog_steps)
    assert traj_c.shape == (26, 2)
    assert np.allclose(traj_c, traj_lf, atol=1e-12)
    assert np.allclose(qp_c.p, qp_lf.p, atol=1e-12)


@pytest.mark.parametrize("friction", [split_friction, sigmoid_friction])
@pytest.mark.parametrize("L", [10, 11])
def test_reversibility(friction, L):
    """Forward, flip, time-reversed schedule, flip returns to the start"""
    config = RAHMCConfig(leapfrog_steps=L, dt=0.1, gamma=0.8, steepness=6.0)
    target = gen_gaussian_mixture(jnp.array([[-2.0, 0.0], [2.0, 1.0]]), sigma=0.8)
    qp0 = QP(q=jnp.array([0.4, -0.2]), p=jnp.array([-0.9, 1.3]))
    gammas = friction_schedule(friction, config)

    qp_L, traj = conformal_integrate(qp0, target.grad_log_density, gammas, config.dt)
    qp_back, traj_back = conformal_integrate(
        qp_L.flip(), target.grad_log_density, time_reversed(gammas), config.dt
    )
    assert np.allclose(qp_back.flip().to_array(), qp0.to_array(), atol=1e-10)
    assert np.allclose(traj_back[::-1], traj, atol=1e-10)


def test_split_even_schedule_is_its_own_reversal():
    config = RAHMCConfig(leapfrog_steps=12, gamma=0.7)
    gammas = friction_schedule(split_friction, config)
    assert np.array_equal(time_reversed(gammas), gammas)
    # no net change of phase-space volume
    assert float(jnp.sum(gammas)) == pytest.approx(0.0, abs=1e-12)


# ============================================================================
# Friction schedules
# ============================================================================

@pytest.mark.parametrize("k", [1, 3, 20])
def test_split_schedule_boundary(k):
    gamma = 0.5
    even = friction_schedule(split_friction, RAHMCConfig(leapfrog_steps=2*k, gamma=gamma))
    assert np.sum(even == -gamma) == k and np.sum(even == gamma) == k
    assert np.all(even[:k] == -gamma)

    odd = friction_schedule(split_friction, RAHMCConfig(leapfrog_steps=2*k + 1, gamma=gamma))
    assert np.sum(odd == -gamma) == k and np.sum(odd == gamma) == k + 1
    assert np.all(odd[k:] == gamma)


def test_sigmoid_antisymmetry():
    T, gamma, steepness = 4.0, 0.5, 10.0
    t = jnp.linspace(0.0, T, 101)
    g = sigmoid_gamma(t, T, gamma, steepness)
    g_rev = sigmoid_gamma(T - t, T, gamma, steepness)
    assert np.allclose(g, -g_rev, atol=1e-12)
    assert np.all(np.abs(g) < gamma)
    assert float(sigmoid_gamma(T / 2, T, gamma, steepness)) == pytest.approx(0.0, abs=1e-15)
    # repel first, attract last
    assert g[0] < 0 < g[-1]
    assert np.all(np.diff(np.asarray(g)) > 0)


def test_sigmoid_schedule_values():
    config = RAHMCConfig(leapfrog_steps=4, dt=0.5, gamma=1.0, steepness=2.0)
    gammas = friction_schedule(sigmoid_friction, config)
    # t/T = 0, 0.25, 0.5, 0.75
    u = 2.0 * (np.array([0.0, 0.25, 0.5, 0.75]) - 0.5)
    expected = 2.0 / (1.0 + np.exp(-u)) - 1.0
    assert np.allclose(gammas, expected, atol=1e-12)


def test_sigmoid_approaches_split_when_steep():
    L = 40
    config = RAHMCConfig(leapfrog_steps=L, dt=0.1, gamma=0.5, steepness=2000.0)
    sig = friction_schedule(sigmoid_friction, config)
    split = friction_schedule(split_friction, config)
    mask = np.arange(L) != L // 2
    assert np.allclose(sig[mask], split[mask], atol=1e-10)
    # the sub-step starting exactly at T/2 sits on the sigmoid midpoint
    assert float(sig[L // 2]) == pytest.approx(0.0, abs=1e-12)


def test_get_schedule():
    assert get_schedule("split") is split_friction
    assert get_schedule("sigmoid") is sigmoid_friction
    with pytest.raises(KeyError, match="split"):
        get_schedule("cosine")


# ============================================================================
# Configuration
# ============================================================================

@pytest.mark.parametrize("params", [
    dict(leapfrog_steps=0),
    dict(leapfrog_steps=-3),
    dict(leapfrog_steps=2.5),
    dict(leapfrog_steps=True),
    dict(dt=0.0),
    dict(dt=-0.1),
    dict(dt=float("nan")),
    dict(gamma=-0.1),
    dict(gamma=float("inf")),
    dict(steepness=0.0),
])
def test_config_errors(params):
    with pytest.raises(ConfigError):
        validate_config(RAHMCConfig(**params))


def test_config_steepness_ignored_for_split():
    config = RAHMCConfig(steepness=0.0)
    assert validate_config(config, use_steepness=False) is config
    gen_rahmc_kernel(gen_gaussian(dim=1), split_friction, config)
    with pytest.raises(ConfigError):
        gen_rahmc_kernel(gen_gaussian(dim=1), sigmoid_friction, config)


def test_config_range_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="config"):
        validate_config(RAHMCConfig())
    assert caplog.records == []

    with caplog.at_level(logging.WARNING, logger="config"):
        validate_config(RAHMCConfig(leapfrog_steps=1, gamma=0.0))
    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "leapfrog_steps" in messages and "gamma" in messages


# ============================================================================
# Transition kernel
# ============================================================================

def test_scenario_single_zero_friction_step():
    """d=1 standard normal, one sub-step, q0 = 0, p0 = 1"""
    config = RAHMCConfig(leapfrog_steps=1, dt=0.1, gamma=0.0)
    kernel = gen_rahmc_kernel(
        gen_gaussian(dim=1), split_friction, config,
        momentum_source=fixed_momentum(1.0), uniform_source=fixed_uniform(0.5),
    )
    q_next, info = kernel(jnp.array([0.0]), jr.PRNGKey(0))

    assert np.allclose(info.proposal, [0.1])
    assert np.allclose(info.trajectory, [[0.0], [0.1]])
    assert np.allclose(info.initial_momentum, [1.0])
    H0 = 0.5
    H = 0.5 * 0.1**2 + 0.5 * 0.995**2
    assert float(info.log_accept_ratio) == pytest.approx(H0 - H, abs=1e-12)
    assert abs(float(info.log_accept_ratio)) < 1e-4
    assert bool(info.accepted)
    assert np.allclose(q_next, [0.1])


def test_accept_reject_determinism():
    log_r = jnp.log(0.5)
    assert bool(accept_reject(log_r, 0.49))
    assert not bool(accept_reject(log_r, 0.51))
    assert bool(accept_reject(0.0, 0.999))
    assert bool(accept_reject(3.0, 0.999))
    # same inputs, same answer
    assert bool(accept_reject(log_r, 0.3)) == bool(accept_reject(log_r, 0.3))


@pytest.mark.parametrize("value", [float("nan"), float("inf"), -float("inf")])
def test_accept_reject_non_finite_rejects(value):
    assert not bool(accept_reject(jnp.asarray(value), 0.0))


def test_zero_density_proposal_rejected():
    target = TargetModel(
        log_density=lambda q: jnp.where(q[0] > 0.05, -jnp.inf, -0.5 * jnp.dot(q, q)),
        grad_log_density=lambda q: -q,
        dim=1,
    )
    config = RAHMCConfig(leapfrog_steps=1, dt=0.1, gamma=0.0)
    kernel = gen_rahmc_kernel(
        target, split_friction, config,
        momentum_source=fixed_momentum(1.0), uniform_source=fixed_uniform(0.0),
    )
    q_next, info = kernel(jnp.array([0.0]), jr.PRNGKey(0))
    assert float(info.log_accept_ratio) == -np.inf
    assert not bool(info.accepted)
    assert np.allclose(q_next, [0.0])


def test_nan_gradient_rejected():
    target = TargetModel(
        log_density=lambda q: -0.5 * jnp.dot(q, q),
        grad_log_density=lambda q: jnp.full_like(q, jnp.nan),
        dim=2,
    )
    kernel = gen_rahmc_kernel(
        target, sigmoid_friction, RAHMCConfig(leapfrog_steps=5),
        uniform_source=fixed_uniform(0.0),
    )
    q0 = jnp.array([0.3, 0.1])
    q_next, info = kernel(q0, jr.PRNGKey(3))
    assert not bool(info.accepted)
    assert np.array_equal(q_next, q0)


def test_dimension_mismatch():
    target = gen_gaussian(dim=2)
    config = RAHMCConfig(leapfrog_steps=5)

    kernel = gen_rahmc_kernel(target, split_friction, config)
    with pytest.raises(DimensionError, match=r"q0 has shape \(3,\)"):
        kernel(jnp.zeros(3), jr.PRNGKey(0))

    bad_momentum = gen_rahmc_kernel(
        target, split_friction, config,
        momentum_source=lambda key, dim: jnp.zeros(dim + 1),
    )
    with pytest.raises(DimensionError, match="p0"):
        bad_momentum(jnp.zeros(2), jr.PRNGKey(0))

    # also at trace time under jit
    with pytest.raises(DimensionError):
        jax.jit(kernel)(jnp.zeros(1), jr.PRNGKey(0))

    chain = Chain(jnp.zeros(2))
    with pytest.raises(DimensionError):
        chain.append(jnp.zeros(3))

    sampler = RAHMCSampler(target, config=config)
    with pytest.raises(DimensionError):
        sampler.reset(jr.PRNGKey(0), dim=3)


def test_dimension_invariant_over_trajectory():
    target = gen_gaussian(dim=3)
    config = RAHMCConfig(leapfrog_steps=7)
    kernel = gen_rahmc_kernel(target, sigmoid_friction, config)
    q = jnp.zeros(3)
    for key in jr.split(jr.PRNGKey(11), 5):
        q, info = kernel(q, key)
        assert q.shape == (3,)
        assert info.initial_momentum.shape == (3,)
        assert info.trajectory.shape == (8, 3)


# ============================================================================
# Sampler, chain and events
# ============================================================================

def test_step_before_reset():
    sampler = RAHMCSampler(gen_gaussian(dim=2), config=RAHMCConfig(leapfrog_steps=5))
    with pytest.raises(RuntimeError):
        sampler.step(jr.PRNGKey(0))


@pytest.mark.parametrize("friction", [split_friction, sigmoid_friction])
def test_chain_growth_and_events(friction):
    n = 6
    visualizer = EventQueue()
    config = RAHMCConfig(leapfrog_steps=8, dt=0.2, gamma=0.5)
    sampler = RAHMCSampler(
        gen_gaussian(dim=2), friction=friction, config=config, visualizer=visualizer
    )
    chain = sampler.reset(jr.PRNGKey(0))
    assert len(chain) == 1
    initial = np.asarray(chain[0]).copy()

    chain = sampler.run(jr.PRNGKey(1), n)
    assert len(chain) == n + 1
    assert chain.to_array().shape == (n + 1, 2)
    # history untouched
    assert np.array_equal(np.asarray(chain[0]), initial)

    events = visualizer.drain()
    assert len(visualizer) == 0
    assert len(events) == 2 * n
    for i in range(n):
        proposal, decision = events[2*i], events[2*i + 1]
        assert isinstance(proposal, ProposalEvent) and proposal.kind == "proposal"
        assert isinstance(decision, DecisionEvent)
        assert decision.kind in ("accept", "reject")
        assert np.array_equal(decision.proposal, proposal.proposal)
        assert proposal.trajectory.shape == (config.leapfrog_steps + 1, 2)
        assert np.array_equal(proposal.trajectory[0], chain[i])
        assert np.allclose(proposal.trajectory[-1], proposal.proposal)
        expected = proposal.proposal if decision.kind == "accept" else chain[i]
        assert np.array_equal(chain[i + 1], expected)


def test_sampler_scenario_with_reset():
    visualizer = EventQueue()
    sampler = RAHMCSampler(
        gen_gaussian(dim=1),
        config=RAHMCConfig(leapfrog_steps=1, dt=0.1, gamma=0.0),
        momentum_source=fixed_momentum(1.0),
        uniform_source=fixed_uniform(0.5),
        visualizer=visualizer,
    )
    chain = sampler.reset(jr.PRNGKey(0))
    # reset draws from the momentum distribution
    assert np.allclose(chain[0], [1.0])

    q = sampler.step(jr.PRNGKey(1))
    assert bool(sampler.last_info.accepted)
    assert [e.kind for e in visualizer.queue] == ["proposal", "accept"]
    assert np.array_equal(chain.last(), q)


def test_configure_between_runs():
    sampler = RAHMCSampler(gen_gaussian(dim=2), config=RAHMCConfig(leapfrog_steps=5))
    sampler.reset(jr.PRNGKey(0))
    sampler.configure(gamma=1.0, leapfrog_steps=6)
    assert sampler.config.gamma == 1.0 and sampler.config.leapfrog_steps == 6
    sampler.step(jr.PRNGKey(1))
    assert sampler.last_info.trajectory.shape == (7, 2)

    with pytest.raises(ConfigError):
        sampler.configure(dt=-1.0)
    assert sampler.config.dt == 0.1


def test_batch_sampler_moments():
    """Split RA-HMC leaves a correlated Gaussian invariant"""
    precision = gen_perturb_precision(dim=2, perturbation=0.3)
    target = gen_gaussian(precision_matrix=precision)
    config = RAHMCConfig(leapfrog_steps=10, dt=0.2, gamma=0.3)
    keys = jr.split(jr.PRNGKey(42), 5000)

    out = rahmc_sampler(jnp.zeros(2), keys, target, split_friction, config)
    assert out.samples.shape == (5000, 2)
    assert out.accepted.shape == (5000,)
    assert compute_accept_rate(out.accepted) == pytest.approx(float(out.accept_rate))
    assert float(out.accept_rate) > 0.6

    true_cov = np.linalg.inv(np.asarray(precision))
    sample_cov = cov(out.samples)
    print(f"\nAccept rate  : {float(out.accept_rate):.3f}")
    print(f"Sample cov   :\n{sample_cov}")
    print(f"True cov     :\n{true_cov}")
    assert np.allclose(jnp.mean(out.samples, axis=0), 0.0, atol=0.15)
    assert maxdiagdiff(sample_cov, true_cov) < 0.25


# ============================================================================
# Named algorithms
# ============================================================================

def test_algorithms():
    target = gen_gaussian(dim=2)
    assert set(ALGORITHMS) == {"RAHMC", "RAHMC-Sigmoid"}
    assert ALGORITHMS["RAHMC"].defaults() == dict(leapfrog_steps=40, dt=0.1, gamma=0.5)
    assert ALGORITHMS["RAHMC-Sigmoid"].defaults()["steepness"] == 10.0

    visualizer = EventQueue()
    sampler = make_sampler("RAHMC-Sigmoid", target, steepness=5.0, leapfrog_steps=10,
                           visualizer=visualizer)
    assert sampler.friction is sigmoid_friction
    assert sampler.config.steepness == 5.0 and sampler.config.leapfrog_steps == 10
    sampler.reset(jr.PRNGKey(0))
    sampler.step(jr.PRNGKey(1))
    assert len(visualizer) == 2

    assert make_sampler("RAHMC", target).friction is split_friction
    with pytest.raises(ConfigError):
        make_sampler("RAHMC", target, steepness=5.0)
    with pytest.raises(KeyError):
        make_sampler("HMC", target)


def test_setup_logging(monkeypatch):
    monkeypatch.setattr(logging.root, "handlers", [])
    monkeypatch.setattr(logging.root, "level", logging.root.level)
    setup_logging("debug")
    assert logging.root.level == logging.DEBUG
    assert any(isinstance(h, RichHandler) for h in logging.root.handlers)
