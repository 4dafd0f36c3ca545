"""AI pipeline: providers, agents and orchestration."""
