from __future__ import annotations

from typing import Any, Optional, Sequence, Union

from .core import CACLAVar
from online_rl.common.critics.td import TD
from online_rl.common.noises.noise_builder import build_noise
from online_rl.common.parameters.parameter import ParameterLike
from online_rl.common.policies.gaussian_policy import GaussianPolicy
from online_rl.common.policies.perturbed_policy import PerturbedPolicy
from online_rl.common.utils.common_utils import FeatureFn
from online_rl.common.utils.shared import Shared


def cacla_var(
    *,
    n_features: int,
    feature_fn: Optional[FeatureFn] = None,
    # -----------------------------
    # Actor hyperparams
    # -----------------------------
    alpha: ParameterLike = 0.01,
    beta: ParameterLike = 0.001,
    gamma: ParameterLike = 0.99,
    std: float = 1.0,
    variance_eps: float = 1e-8,
    # -----------------------------
    # Critic hyperparams
    # -----------------------------
    critic_alpha: ParameterLike = 0.1,
    # -----------------------------
    # Exploration (behaviour policy)
    # -----------------------------
    noise_kind: Optional[str] = "gaussian",
    noise_mu: float = 0.0,
    noise_sigma: float = 0.5,
    ou_theta: float = 0.15,
    ou_dt: float = 1e-2,
    action_noise_low: Optional[Union[float, Sequence[float]]] = None,
    action_noise_high: Optional[Union[float, Sequence[float]]] = None,
) -> CACLAVar:
    """
    Build a complete CACLA+Var agent for a scalar continuous action.

    Wires together:

    1) :class:`TD`              : linear state-value critic (`critic_alpha`, `gamma`)
    2) :class:`GaussianPolicy`  : target policy (linear mean, fixed `std`)
    3) :class:`PerturbedPolicy` : behaviour policy = target policy + exploration
       noise built by :func:`build_noise`
    4) :class:`CACLAVar`        : the learner

    The target GaussianPolicy is held in a single :class:`Shared` handle.
    Without noise that handle is also the behaviour policy. With noise the
    behaviour policy is a separate handle around a PerturbedPolicy holding the
    same GaussianPolicy object: it only calls ``sample`` on it (never
    ``update``), so actor updates are visible to exploration immediately and
    the target is written only through its own handle.

    Parameters
    ----------
    n_features : int
        Length of the feature vector shared by critic and actor.
    feature_fn : callable, optional
        State -> features. Defaults to flattening the state.
    alpha, beta, gamma : ParameterLike
        Actor step size, variance EMA rate and discount factor. Numbers are
        fixed schedules; mappings go through ``build_parameter``.
    std : float
        Standard deviation of the target policy.
    variance_eps : float
        Variance floor inside the scaler.
    critic_alpha : ParameterLike
        TD critic step size.
    noise_kind : str or None
        Exploration noise kind (see :func:`build_noise`). ``None`` explores
        with the Gaussian target policy itself.
    noise_mu, noise_sigma, ou_theta, ou_dt, action_noise_low, action_noise_high
        Forwarded to :func:`build_noise`.

    Returns
    -------
    algo : CACLAVar

    Examples
    --------
    >>> agent = cacla_var(n_features=3, alpha={"name": "exp", "value": 0.05, "rate": 0.999})
    >>> a = agent.sample_behaviour([1.0, 0.0, 0.5])
    """
    critic = TD(n_features, alpha=critic_alpha, gamma=gamma, feature_fn=feature_fn)
    policy = GaussianPolicy(n_features, std=float(std), feature_fn=feature_fn)
    target = Shared(policy)

    noise = build_noise(
        kind=noise_kind,
        action_dim=1,
        noise_mu=float(noise_mu),
        noise_sigma=float(noise_sigma),
        ou_theta=float(ou_theta),
        ou_dt=float(ou_dt),
        action_noise_low=action_noise_low,
        action_noise_high=action_noise_high,
    )
    behaviour: Any = target if noise is None else PerturbedPolicy(policy, noise)

    return CACLAVar(
        critic,
        target,
        behaviour,
        alpha=alpha,
        beta=beta,
        gamma=gamma,
        variance_eps=float(variance_eps),
    )
