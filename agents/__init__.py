"""
Nutso Agents
Headless players for the Nutso engine: gymnasium env, aim solver, evaluation CLI.
"""
