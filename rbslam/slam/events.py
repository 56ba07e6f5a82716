"""Event log of controls and landmark observations.

``SlamData`` records every control and observation as a probability
distribution and pushes each new event to its subscribers. Subscribers
implement ``SlamListener`` and are held by weak reference: the log never
keeps an engine alive, and subscribers that have been garbage collected are
pruned the next time an event is broadcast.

Event order for one run:

    observation(0, ...)*  end_observation(0)
    control(0, u₀)  observation(1, ...)*  end_observation(1)
    control(1, u₁)  ...
    end_simulation(T)

``control(t, u)`` carries the motion from pose t to pose t+1, so timestep 0
has no control of its own. The log flags each observation as referring to a
new landmark or to one seen before, based on its own records.
"""

import weakref
from typing import Callable, Dict, Iterator, List

from rbslam.estimators.gaussian import MultivariateNormal
from rbslam.slam.types import FeatureId, Timestep


class SlamListener:
    """
    Observer interface for SlamData events.

    All methods default to no-ops so that subscribers override only what
    they need.
    """

    def control(self, t: Timestep, control: MultivariateNormal) -> None:
        pass

    def observation(
        self, t: Timestep, feature_id: FeatureId, observation: MultivariateNormal, is_new: bool
    ) -> None:
        pass

    def end_observation(self, t: Timestep) -> None:
        pass

    def end_simulation(self, t: Timestep) -> None:
        pass


class SlamData:
    """
    Append-only record of controls and observations.

    Attributes:
        controls: Control distributions, indexed by the timestep they leave.
    """

    def __init__(self):
        self.controls: List[MultivariateNormal] = []
        self._features: Dict[FeatureId, Dict[Timestep, MultivariateNormal]] = {}
        self._listeners: List[weakref.ref] = []

    def connect(self, listener: SlamListener) -> None:
        """Subscribe ``listener`` (held by weak reference) to future events."""
        self._listeners.append(weakref.ref(listener))

    def disconnect(self, listener: SlamListener) -> None:
        self._listeners = [ref for ref in self._listeners if ref() is not listener]

    def _notify(self, event: Callable[[SlamListener], None]) -> None:
        alive = []
        for ref in self._listeners:
            listener = ref()
            if listener is None:
                continue
            alive.append(ref)
            event(listener)
        self._listeners = alive

    def num_listeners(self) -> int:
        return sum(1 for ref in self._listeners if ref() is not None)

    def current_timestep(self) -> Timestep:
        """Timestep that observations are currently being recorded for."""
        return len(self.controls)

    def control(self, t: Timestep) -> MultivariateNormal:
        return self.controls[t]

    def features(self) -> Iterator[FeatureId]:
        return iter(sorted(self._features))

    def feature_data(self, feature_id: FeatureId) -> Dict[Timestep, MultivariateNormal]:
        """Observations of one landmark, by timestep."""
        return self._features[feature_id]

    def feature_observation(self, feature_id: FeatureId, t: Timestep) -> MultivariateNormal:
        return self._features[feature_id][t]

    def add_control(self, control: MultivariateNormal) -> None:
        """Record the control leaving the current timestep and advance."""
        t = self.current_timestep()
        self.controls.append(control)
        self._notify(lambda listener: listener.control(t, control))

    def add_observation(self, feature_id: FeatureId, observation: MultivariateNormal) -> None:
        """
        Record an observation at the current timestep.

        A second observation of the same landmark within one timestep is
        ignored.
        """
        t = self.current_timestep()
        is_new = feature_id not in self._features
        per_timestep = self._features.setdefault(feature_id, {})
        if t in per_timestep:
            return
        per_timestep[t] = observation
        self._notify(lambda listener: listener.observation(t, feature_id, observation, is_new))

    def end_observation(self) -> None:
        """Signal that every observation of the current timestep is recorded."""
        t = self.current_timestep()
        self._notify(lambda listener: listener.end_observation(t))

    def end_simulation(self) -> None:
        t = self.current_timestep()
        self._notify(lambda listener: listener.end_simulation(t))
