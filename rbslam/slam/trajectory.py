"""Trajectory storage for particle lineages and materialised estimates.

Two representations are used:

- ``TrajectoryNode``: an immutable singly-linked list of poses, newest first.
  Each particle holds the head of its own lineage; particles cloned at
  resampling share every older node, so the history of N particles over T
  steps costs far less than N × T poses. Nodes are freed by reference
  counting once no surviving particle reaches them.
- ``Trajectory``: a flat, append-only pose sequence with O(1) indexing,
  used for the materialised best-estimate trajectory and for the single
  running trajectory kept when per-particle history is discarded.
"""

from typing import Iterator, List, Optional

import numpy as np

from rbslam.slam.types import Pose


class TrajectoryNode:
    """
    One pose in a particle lineage.

    Attributes:
        state: Pose [x, y, yaw] at this timestep.
        previous: Node of the preceding timestep, or None at the root.
    """

    __slots__ = ("state", "previous")

    def __init__(self, state: Pose, previous: Optional["TrajectoryNode"] = None):
        self.state = np.array(state, dtype=np.float64)
        self.state.setflags(write=False)
        self.previous = previous

    def walk_back(self, steps: int) -> "TrajectoryNode":
        """
        Ancestor ``steps`` timesteps before this node.

        Requires O(steps) pointer hops.
        """
        node = self
        for _ in range(steps):
            node = node.previous
            assert node is not None, "walked past the root of the trajectory"
        return node

    def ancestors(self) -> Iterator["TrajectoryNode"]:
        """Iterate from this node back to the root, newest first."""
        node: Optional[TrajectoryNode] = self
        while node is not None:
            yield node
            node = node.previous

    def depth(self) -> int:
        """Number of nodes from the root up to and including this one."""
        return sum(1 for _ in self.ancestors())

    def materialize(self) -> "Trajectory":
        """Poses from the root to this node, oldest first."""
        states = [node.state for node in self.ancestors()]
        states.reverse()
        return Trajectory(states)

    def __repr__(self) -> str:
        return f"TrajectoryNode(state={self.state})"


class Trajectory:
    """
    Append-only sequence of poses indexed by timestep.

    Example:
        >>> traj = Trajectory()
        >>> traj.append(np.zeros(3))
        >>> traj.append(np.array([1.0, 0.0, 0.0]))
        >>> traj[1]
        array([1., 0., 0.])
    """

    def __init__(self, states: Optional[List[Pose]] = None):
        self._states: List[Pose] = []
        for state in states or []:
            self.append(state)

    def append(self, state: Pose) -> None:
        state = np.array(state, dtype=np.float64)
        if state.shape != (3,):
            raise ValueError(f"state must have shape (3,), got {state.shape}")
        state.setflags(write=False)
        self._states.append(state)

    def as_array(self) -> np.ndarray:
        """Poses stacked into an array of shape (T, 3)."""
        if not self._states:
            return np.zeros((0, 3))
        return np.vstack(self._states)

    def __getitem__(self, timestep: int) -> Pose:
        return self._states[timestep]

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[Pose]:
        return iter(self._states)

    def __repr__(self) -> str:
        return f"Trajectory(length={len(self._states)})"
