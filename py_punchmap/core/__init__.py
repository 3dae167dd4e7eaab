"""
Spatial annotation and interaction engine.
"""

from .geometry import Point, Edge, DegenerateGeometryWarning, point_in_polygon, distance_point_to_segment, centroid
from .projection import CoordinateProjector, ViewTransform
from .feature_index import Feature, FeatureIndex, DuplicateIdError
from .feature_source import features_from_geojson, load_geojson_file, boundary_rings, InvalidFeatureError
from .hit_testing import HitTester, HitResult
from .markers import MarkerPlacer, MarkerLocation, place
from .caps import CapPolygon, CapPair, compute_caps
from .status_store import (StatusStore, FeatureStatus, MarkerRecord, Stage, StatusChange, ProgressSummary,
                           PersistenceReadError, MemoryBlobStore, FileBlobStore, FREE_GROUP_ID)
from .gestures import GestureController, GestureMode, PointerButton, Tool, Intent, IntentKind
from .session import InspectionSession

__all__ = ['Point', 'Edge', 'DegenerateGeometryWarning', 'point_in_polygon', 'distance_point_to_segment', 'centroid',
           'CoordinateProjector', 'ViewTransform',
           'Feature', 'FeatureIndex', 'DuplicateIdError',
           'features_from_geojson', 'load_geojson_file', 'boundary_rings', 'InvalidFeatureError',
           'HitTester', 'HitResult',
           'MarkerPlacer', 'MarkerLocation', 'place',
           'CapPolygon', 'CapPair', 'compute_caps',
           'StatusStore', 'FeatureStatus', 'MarkerRecord', 'Stage', 'StatusChange', 'ProgressSummary',
           'PersistenceReadError', 'MemoryBlobStore', 'FileBlobStore', 'FREE_GROUP_ID',
           'GestureController', 'GestureMode', 'PointerButton', 'Tool', 'Intent', 'IntentKind',
           'InspectionSession']
