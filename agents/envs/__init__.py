"""Gymnasium environments."""

from agents.envs.toss_env import TossEnv

__all__ = ["TossEnv"]
