"""FastSLAM 2.0: Rao-Blackwellized particle filter SLAM.

Each particle carries one hypothesis of the robot trajectory and, given that
trajectory, an independent Gaussian estimate for every landmark. Poses are
sampled; landmarks are tracked analytically with unscented Kalman updates.

Per timestep t (observations of step t buffered, control from t-1 pending):

    1. Resample if N_eff < resample_threshold · N.
    2. For every particle:
       a. Predict the pose Gaussian by pushing the control through the
          motion model (unscented transform).
       b. Correct it jointly with each re-observed landmark (unscented
          update on [pose, landmark]) to get the proposal distribution.
       c. Sample the new pose from the proposal.
       d. Weight by exp(log p(z | x) + log p(x | x_prev, u) − log q(x)).
       e. Append the pose to the particle's trajectory.
       Then warn if the filter has collapsed (N_eff < collapse_threshold · N).
    3. Update every re-observed landmark in every particle's map.
    4. Initialise every newly observed landmark in every particle's map.
    5. Advance the timestep and invalidate cached estimates.

Landmark maps are ``PersistentMap`` instances, so particles cloned at
resampling share all landmark estimates until one of them updates a
landmark, and then only the path to that landmark is copied.

Example:
    >>> from rbslam.models import OdometryModel, RangeBearingModel
    >>> from rbslam.slam import FastSlam, FastSlamConfig, SlamData
    >>> data = SlamData()
    >>> slam = FastSlam(OdometryModel(), RangeBearingModel(), FastSlamConfig(num_particles=50, seed=1))
    >>> data.connect(slam)
    >>> data.add_observation(0, RangeBearingModel.observation(2.0, 0.5, 0.1, 0.05))
    >>> data.end_observation()
    >>> data.add_control(OdometryModel.control(1.0, 0.0, 0.0, std=(0.05, 0.05, 0.01)))
    >>> data.end_observation()
    >>> slam.current_timestep()
    1
"""

import warnings
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import numpy as np

from rbslam.containers.persistent_map import PersistentMap
from rbslam.estimators.gaussian import MultivariateNormal
from rbslam.estimators.particle_set import WeightedParticleSet
from rbslam.estimators.unscented import unscented_transform, unscented_update
from rbslam.slam.config import FastSlamConfig
from rbslam.slam.events import SlamListener
from rbslam.slam.interfaces import SlamResult
from rbslam.slam.trajectory import Trajectory, TrajectoryNode
from rbslam.slam.types import Feature, FeatureId, FeatureMap, ObservedFeature, Pose, Timestep

if TYPE_CHECKING:
    from rbslam.models.measurement_models import ObservationModel
    from rbslam.models.motion_models import MotionModel


class Particle:
    """
    One trajectory-and-map hypothesis.

    Attributes:
        trajectory: Head of this particle's pose lineage.
        features: Landmark id -> MultivariateNormal estimate.
    """

    __slots__ = ("trajectory", "features")

    def __init__(self, trajectory: TrajectoryNode, features: PersistentMap):
        self.trajectory = trajectory
        self.features = features

    @property
    def state(self) -> Pose:
        return self.trajectory.state

    def __copy__(self) -> "Particle":
        # Same lineage, new map handle on the same tree
        return Particle(self.trajectory, self.features.copy())

    def __repr__(self) -> str:
        return f"Particle(state={self.state}, features={len(self.features)})"


class EstimateCache:
    """
    Memoised best-estimate views, owned by the engine.

    Entries are None until first requested after an invalidation.
    """

    def __init__(self):
        self.trajectory: Optional[Trajectory] = None
        self.feature_map: Optional[FeatureMap] = None

    def invalidate(self) -> None:
        self.trajectory = None
        self.feature_map = None


class FastSlam(SlamResult, SlamListener):
    """
    FastSLAM 2.0 engine driven by SlamData events.

    Attributes:
        motion_model: Motion model applied to controls.
        observation_model: Landmark observation model.
        config: Filter parameters.
        particles: Weighted particle population.
    """

    def __init__(
        self,
        motion_model: "MotionModel",
        observation_model: "ObservationModel",
        config: Optional[FastSlamConfig] = None,
    ):
        """
        Initialize the engine with a single particle at the origin.

        The population grows to ``config.num_particles`` at the first
        resampling. With ``num_particles == 0`` the engine holds no
        particles and produces empty estimates.

        Args:
            motion_model: Motion model (e.g. OdometryModel, VelocityModel).
            observation_model: Observation model (e.g. RangeBearingModel).
            config: Filter parameters. Defaults to FastSlamConfig().
        """
        self.motion_model = motion_model
        self.observation_model = observation_model
        self.config = config if config is not None else FastSlamConfig()

        self.rng = np.random.default_rng(self.config.seed)
        self._ukf = self.config.unscented_params()

        self._next_timestep: Timestep = 0
        self._current_control: Optional[MultivariateNormal] = None
        self._seen_features: List[ObservedFeature] = []
        self._new_features: List[ObservedFeature] = []
        self._num_features = 0

        initial = []
        if self.config.num_particles > 0:
            origin = np.zeros(motion_model.state_dim)
            initial.append(Particle(TrajectoryNode(origin), PersistentMap()))
        self.particles: WeightedParticleSet[Particle] = WeightedParticleSet(initial)

        # Running best-particle trajectory, used when history is discarded
        self._running_trajectory = Trajectory()
        self._cache = EstimateCache()

        self._resample_count = 0
        self._collapse_count = 0

    # ------------------------------------------------------------------
    # SlamListener
    # ------------------------------------------------------------------

    def control(self, t: Timestep, control: MultivariateNormal) -> None:
        """Accept the control that moves the robot from pose t to pose t+1."""
        assert t == self.current_timestep(), (
            f"control for timestep {t} received while at timestep {self.current_timestep()}"
        )
        assert self._current_control is None, f"second control for timestep {t}"
        self.motion_model.validate_control(control)
        self._current_control = control

    def observation(
        self, t: Timestep, feature_id: FeatureId, observation: MultivariateNormal, is_new: bool
    ) -> None:
        """Buffer a landmark observation for timestep t."""
        assert t == self._next_timestep, (
            f"observation for timestep {t} received while expecting {self._next_timestep}"
        )
        self.observation_model.validate_observation(observation)

        if len(self.particles) > 0:
            known = feature_id in self.particles[0].features
            assert known != is_new, (
                f"feature {feature_id} flagged is_new={is_new} but the map "
                f"{'already holds' if known else 'does not hold'} it"
            )

        observed = ObservedFeature(feature_id, observation)
        if is_new:
            self._new_features.append(observed)
        else:
            self._seen_features.append(observed)

    def end_observation(self, t: Timestep) -> None:
        self.timestep(t)

    # ------------------------------------------------------------------
    # Timestep processing
    # ------------------------------------------------------------------

    def resample_required(self) -> bool:
        return self.particles.effective_size() < self.config.num_particles * self.config.resample_threshold

    def filter_collapsed(self) -> bool:
        return self.particles.effective_size() < self.config.num_particles * self.config.collapse_threshold

    def timestep(self, t: Timestep) -> None:
        """
        Process every buffered event of timestep t.

        Timesteps already processed are ignored, so the same signal can be
        used to request results for an earlier step.
        """
        if t < self._next_timestep:
            return
        assert t == self._next_timestep, f"timestep {t} delivered while expecting {self._next_timestep}"

        if t > 0:
            if self.resample_required():
                self.particles.resample(self.rng, self.config.num_particles)
                self._resample_count += 1

            assert self._current_control is not None, f"no control received for timestep {t}"
            self.particles.update(self._particle_state_update)
            self._current_control = None

            if self.filter_collapsed():
                self._collapse_count += 1
                warnings.warn(
                    f"FastSLAM filter collapse at timestep {t}: effective sample size "
                    f"{self.particles.effective_size():.2f} below "
                    f"{self.config.num_particles * self.config.collapse_threshold:.2f}",
                    RuntimeWarning,
                )

        if not self.config.keep_history and len(self.particles) > 0:
            self._running_trajectory.append(self.particles.max_weight_particle().state)

        self._update_seen_features()
        self._initialize_new_features()

        self._cache.invalidate()
        self._next_timestep += 1

    def _normalize_state_feature(self, x: np.ndarray) -> np.ndarray:
        n = self.motion_model.state_dim
        return np.concatenate([self.motion_model.normalize(x[:n]), x[n:]])

    def _proposal(self, particle: Particle, predicted: MultivariateNormal) -> MultivariateNormal:
        """
        Pose proposal conditioned on this timestep's re-observed landmarks.

        Each observation corrects the joint Gaussian over [pose, landmark],
        starting from zero pose-landmark cross-covariance; the pose marginal
        carries over to the next observation.
        """
        n = self.motion_model.state_dim
        proposal = predicted

        for obs in self._seen_features:
            feature = particle.features.get(obs.feature_id)
            joint = MultivariateNormal.joint(proposal, feature)
            joint = unscented_update(
                self._ukf,
                self.observation_model.joint_observe,
                joint,
                obs.observation,
                residual=self.observation_model.residual,
                normalize=self._normalize_state_feature,
            )
            proposal = joint.marginal(n)

        return proposal

    def _observation_log_likelihood(self, particle: Particle, state: Pose) -> float:
        """Σ log p(z | state, landmark prior) over the re-observed landmarks."""
        model = self.observation_model
        log_likelihood = 0.0

        for obs in self._seen_features:
            feature = particle.features.get(obs.feature_id)
            predicted_obs, _ = unscented_transform(
                self._ukf,
                lambda landmark: model.observe(state, landmark),
                feature,
                noise_chol=obs.observation.chol_cov,
                residual=model.residual,
                normalize=model.normalize,
            )
            log_likelihood += predicted_obs.log_likelihood(obs.observation.mean, residual=model.residual)

        return log_likelihood

    def _particle_state_update(self, particle: Particle) -> float:
        """Sample a new pose for one particle and return its incremental weight."""
        motion = self.motion_model
        previous = particle.state

        predicted, _ = unscented_transform(
            self._ukf,
            lambda u: motion.predict(previous, u),
            self._current_control,
            residual=motion.residual,
            normalize=motion.normalize,
        )
        proposal = self._proposal(particle, predicted)

        state = motion.normalize(proposal.sample(self.rng))

        obs_log_likelihood = self._observation_log_likelihood(particle, state)
        state_log_likelihood = predicted.log_likelihood(state, residual=motion.residual)
        proposal_log_likelihood = proposal.log_likelihood(state, residual=motion.residual)

        if self.config.keep_history:
            particle.trajectory = TrajectoryNode(state, particle.trajectory)
        else:
            particle.trajectory = TrajectoryNode(state)

        return float(np.exp(obs_log_likelihood + state_log_likelihood - proposal_log_likelihood))

    def _update_seen_features(self) -> None:
        model = self.observation_model

        for obs in self._seen_features:
            for particle in self.particles:
                state = particle.state
                feature = particle.features.get(obs.feature_id)
                updated = unscented_update(
                    self._ukf,
                    lambda landmark: model.observe(state, landmark),
                    feature,
                    obs.observation,
                    residual=model.residual,
                )
                particle.features.insert(obs.feature_id, updated)

        self._seen_features.clear()

    def _initialize_new_features(self) -> None:
        model = self.observation_model

        for obs in self._new_features:
            init_dist = model.initialization_distribution(obs.observation)
            for particle in self.particles:
                state = particle.state
                feature, _ = unscented_transform(
                    self._ukf,
                    lambda v: model.initialize(state, v),
                    init_dist,
                )
                particle.features.insert(obs.feature_id, feature)

        self._num_features += len(self._new_features)
        self._new_features.clear()

    # ------------------------------------------------------------------
    # SlamResult
    # ------------------------------------------------------------------

    def current_timestep(self) -> Timestep:
        assert self._next_timestep > 0, "no timestep has been processed yet"
        return self._next_timestep - 1

    def get_state(self, t: Timestep) -> Pose:
        """
        Pose at timestep t of the highest-weight particle.

        With history retained this walks back along the particle's lineage
        (O(current_timestep - t)); otherwise it indexes the running
        trajectory in O(1).
        """
        assert 0 <= t <= self.current_timestep(), (
            f"timestep {t} outside [0, {self.current_timestep()}]"
        )
        if self.config.keep_history:
            best = self.particles.max_weight_particle()
            return best.trajectory.walk_back(self.current_timestep() - t).state
        return self._running_trajectory[t]

    def get_feature(self, feature_id: FeatureId) -> Feature:
        """
        Mean landmark position in the highest-weight particle's map.

        Raises:
            KeyError: If the landmark has never been observed.
        """
        return self.particles.max_weight_particle().features.get(feature_id).mean.copy()

    def get_trajectory(self) -> Trajectory:
        """Best trajectory so far, as a snapshot that later timesteps do not extend."""
        if self._cache.trajectory is None:
            if not self.config.keep_history:
                self._cache.trajectory = Trajectory(list(self._running_trajectory))
            elif len(self.particles) == 0:
                self._cache.trajectory = Trajectory()
            else:
                self._cache.trajectory = self.particles.max_weight_particle().trajectory.materialize()
        return self._cache.trajectory

    def get_feature_map(self) -> FeatureMap:
        if self._cache.feature_map is None:
            feature_map: FeatureMap = {}
            if len(self.particles) > 0:
                best = self.particles.max_weight_particle()
                for feature_id, estimate in best.features.items():
                    feature_map[feature_id] = estimate.mean.copy()
                assert len(feature_map) == self._num_features
            self._cache.feature_map = feature_map
        return self._cache.feature_map

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def effective_particle_ratio(self) -> float:
        """Effective sample size divided by the population size."""
        if len(self.particles) == 0:
            return 0.0
        return self.particles.effective_size() / len(self.particles)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get diagnostic statistics.

        Returns:
            Dictionary with population size, effective sample size,
            resample/collapse counts, etc.
        """
        return {
            'next_timestep': self._next_timestep,
            'num_particles': len(self.particles),
            'effective_size': self.particles.effective_size(),
            'effective_particle_ratio': self.effective_particle_ratio(),
            'num_features': self._num_features,
            'resample_count': self._resample_count,
            'collapse_count': self._collapse_count,
        }
