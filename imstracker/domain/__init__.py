"""Domain objects: voltage groups, observed peaks and targets."""

from .voltage_group import VoltageGroup
from .observed_peak import FeatureStatistics, ImsPeak, ObservationType, ObservedPeak
from .target import ImsTarget

__all__ = [
    'FeatureStatistics',
    'ImsPeak',
    'ImsTarget',
    'ObservationType',
    'ObservedPeak',
    'VoltageGroup',
]
