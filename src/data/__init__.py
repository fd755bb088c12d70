from .classifier import EntityClass, EntityClassifier, EntityInfo, ProfileKey
from .profiles import BehaviorProfile, CounterEntry, Bucket
from .aggregator import BehaviorAggregator
from .occupancy import SpatialOccupancyTracker, DamageObservationTracker
from .collector import Collector, CollectorConfig

__all__ = [
    "EntityClass", "EntityClassifier", "EntityInfo", "ProfileKey",
    "BehaviorProfile", "CounterEntry", "Bucket", "BehaviorAggregator",
    "SpatialOccupancyTracker", "DamageObservationTracker",
    "Collector", "CollectorConfig",
]
