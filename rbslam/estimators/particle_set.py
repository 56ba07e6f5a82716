"""
Weighted particle set for sequential Monte Carlo estimation.

The set is generic over the particle type: it only multiplies weights by
the incremental weights returned from an update functor, measures weight
degeneracy, and resamples. What a particle contains (a state vector, a
trajectory and a landmark map, ...) is up to the caller.

Implements:
    - Weight update ẇᵢ = wᵢ · f(pᵢ), followed by normalisation
    - Effective sample size N_eff = 1 / Σ w̄ᵢ²
    - Systematic resampling with a single uniform offset
"""

import copy
from typing import Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

import numpy as np

P = TypeVar("P")


class WeightedParticleSet(Generic[P]):
    """
    Population of (particle, weight) pairs.

    Weights are kept normalised (Σ wᵢ = 1) after every ``update`` and
    ``resample``. Resampled duplicates are made with ``copy.copy``, so a
    particle type that holds shared, persistent structures should implement
    ``__copy__`` to hand out new handles on them rather than deep copies.

    Attributes:
        particles: Particle objects, in slot order.
    """

    def __init__(self, particles: Iterable[P] = (), weights: Optional[Iterable[float]] = None):
        """
        Initialize the particle set.

        Args:
            particles: Initial particles.
            weights: Optional non-negative weights, one per particle. Defaults
                to uniform weights.

        Raises:
            ValueError: If the weights do not match the particles or are negative.
        """
        self.particles: List[P] = list(particles)

        if weights is None:
            self._weights = np.ones(len(self.particles))
        else:
            self._weights = np.asarray(list(weights), dtype=float)
            if self._weights.shape != (len(self.particles),):
                raise ValueError(
                    f"Expected {len(self.particles)} weights, got shape {self._weights.shape}"
                )
            if np.any(self._weights < 0):
                raise ValueError("Particle weights must be non-negative")

        self.normalize()

    @property
    def weights(self) -> np.ndarray:
        """Normalised weights (copy)."""
        return self._weights.copy()

    def add(self, particle: P, weight: float = 1.0) -> None:
        """Append a particle with an unnormalised weight and renormalise."""
        if weight < 0:
            raise ValueError(f"weight must be non-negative, got {weight}")
        total = float(np.sum(self._weights))
        self.particles.append(particle)
        self._weights = np.append(self._weights * total, weight)
        self.normalize()

    def normalize(self) -> None:
        """
        Rescale weights to sum to one.

        If every weight is zero, the weights are reset to uniform.

        Raises:
            ValueError: If the weight sum is not finite.
        """
        if not self.particles:
            self._weights = np.zeros(0)
            return

        weight_sum = np.sum(self._weights)
        if not np.isfinite(weight_sum):
            raise ValueError(f"Particle weights must have a finite sum, got {weight_sum}")
        if weight_sum > 0:
            self._weights = self._weights / weight_sum
        else:
            self._weights = np.ones(len(self.particles)) / len(self.particles)

    def effective_size(self) -> float:
        """
        Compute effective sample size.

        N_eff = 1 / Σ(w̄ᵢ²)

        Returns:
            Effective sample size in [1, N], or 0.0 for an empty set.
        """
        if not self.particles:
            return 0.0
        return float(1.0 / np.sum(self._weights**2))

    def update(self, func: Callable[[P], float]) -> None:
        """
        Apply a per-particle update and reweight.

        Args:
            func: Called once per particle; may modify that particle only, and
                returns its non-negative incremental (unnormalised) weight.

        Raises:
            ValueError: If an incremental weight is negative or not finite.
        """
        incremental = np.array([func(particle) for particle in self.particles], dtype=float)
        bad = ~np.isfinite(incremental) | (incremental < 0)
        if np.any(bad):
            raise ValueError(
                f"Incremental weights must be finite and non-negative, got {incremental[bad][:5]}"
            )
        self._weights = self._weights * incremental
        self.normalize()

    def resample(self, rng: np.random.Generator, target_count: int) -> None:
        """
        Perform systematic resampling.

        Draws ``target_count`` particles with probability proportional to
        weight, using stratified positions uᵢ = (u₀ + i) / M with a single
        u₀ ~ U[0, 1). The first draw of a particle reuses the object itself;
        further draws are shallow copies.

        Args:
            rng: Random generator.
            target_count: Size of the new population.
        """
        if target_count < 0:
            raise ValueError(f"target_count must be non-negative, got {target_count}")
        if not self.particles or target_count == 0:
            self.particles = []
            self._weights = np.zeros(0)
            return

        cumsum = np.cumsum(self._weights)
        positions = (rng.uniform(0.0, 1.0) + np.arange(target_count)) / target_count
        indices = np.searchsorted(cumsum, positions * cumsum[-1], side="right")
        indices = np.minimum(indices, len(self.particles) - 1)

        drawn = set()
        new_particles = []
        for index in indices:
            if index in drawn:
                new_particles.append(copy.copy(self.particles[index]))
            else:
                drawn.add(index)
                new_particles.append(self.particles[index])

        self.particles = new_particles
        self._weights = np.full(target_count, 1.0 / target_count)

    def max_weight_particle(self) -> P:
        """
        Particle with the largest weight (first one on ties).

        Raises:
            IndexError: If the set is empty.
        """
        if not self.particles:
            raise IndexError("max_weight_particle() on an empty particle set")
        return self.particles[int(np.argmax(self._weights))]

    def __len__(self) -> int:
        return len(self.particles)

    def __iter__(self) -> Iterator[P]:
        return iter(self.particles)

    def __getitem__(self, index: int) -> P:
        return self.particles[index]
