"""Coordination between timeline processes."""

from timeline.distributed.leader import LeaderElection

__all__ = ["LeaderElection"]
