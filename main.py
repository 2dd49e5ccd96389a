import itertools

import numpy as np
import gymnasium as gym
from tqdm import tqdm

from online_rl import Evaluation, GymDomain, SerialExperiment, cacla_var, run_experiment
from online_rl.common.loggers import build_logger

# -----------------------------
# Env factories
# -----------------------------
MAX_TORQUE = 2.0


def pendulum_features(obs):
    """
    Pendulum observation ``[cos th, sin th, th_dot]`` -> linear features
    with a bias term.
    """
    cos_th, sin_th, th_dot = np.asarray(obs, dtype=np.float64).reshape(-1)
    return [1.0, cos_th, sin_th, th_dot / 8.0, sin_th * th_dot / 8.0]


def to_env_action(a):
    # agent actions are scalars; Pendulum expects a (1,) array
    return np.clip(np.array([a], dtype=np.float32), -MAX_TORQUE, MAX_TORQUE)


def make_domain(env, seed):
    seeds = itertools.count(seed)

    def factory():
        return GymDomain(env, reset_kwargs={"seed": next(seeds)}, action_fn=to_env_action)

    return factory


train_env = gym.make("Pendulum-v1")
eval_env = gym.make("Pendulum-v1")

# -----------------------------
# Build agent
# -----------------------------
config = dict(
    n_features=5,
    alpha={"name": "exponential", "value": 0.01, "rate": 0.995, "floor": 1e-4},
    beta=0.001,
    gamma=0.95,
    std=0.5,
    critic_alpha=0.05,
    noise_kind="ou",
    noise_sigma=0.6,
    ou_dt=0.05,
)
agent = cacla_var(feature_fn=pendulum_features, **config)

# -----------------------------
# Train + evaluate
# -----------------------------
with build_logger(log_dir="./runs", exp_name="pendulum_cacla_var", console_every=10) as logger:
    logger.dump_config(config)

    train = SerialExperiment(agent, make_domain(train_env, seed=0), step_limit=200)
    run_experiment(train, 200, logger=logger, prefix="train", show_progress=True)

    evaluation = Evaluation(agent, make_domain(eval_env, seed=10_000), step_limit=200)
    episodes = run_experiment(evaluation, 10, prefix="eval")
    tqdm.write(f"eval return: {np.mean([ep.total_reward for ep in episodes]):.1f}")

train_env.close()
eval_env.close()
