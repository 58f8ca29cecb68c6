"""State for the weather map: dropped pins, edit modes and the selected forecast."""
import logging
import threading
from typing import Callable, Dict

logger = logging.getLogger('fetchfeed.map')

# Coordinates are compared at this many decimal places (~1 cm)
_PRECISION = 7

_INITIAL_STATE = {
    'markers': [],
    'isAddingMarker': False,
    'isDeletingMarker': False,
    'selectedMarkerLocation': None,
    'weatherData': None,
    'isLoadingWeather': False,
    'error': None,
}


def _point(latitude, longitude) -> Dict:
    lat = round(float(latitude), _PRECISION)
    lon = round(float(longitude), _PRECISION)
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise ValueError('coordinates out of range')
    return {'latitude': lat, 'longitude': lon}


class MapService:
    """Holds one map's state as an immutable snapshot.

    Every operation builds a new state dict and swaps it in, so a snapshot
    returned by :attr:`state` never changes underneath the caller.
    """

    def __init__(self, weather_client=None) -> None:
        """
        Args:
            weather_client: Object with a ``get_forecast(lat, lon)`` method
                (normally :class:`weather_client.WeatherClient`).
        """
        self._weather = weather_client
        self._lock = threading.Lock()
        self._state = dict(_INITIAL_STATE)

    @property
    def state(self) -> Dict:
        return self._state

    def _replace(self, **changes) -> Dict:
        return self._apply(lambda _state: changes)

    def _apply(self, compute: Callable[[Dict], Dict]) -> Dict:
        """Merge ``compute(current_state)`` into the state under one lock hold."""
        with self._lock:
            self._state = dict(self._state, **compute(self._state))
            return self._state

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def enable_add_mode(self) -> Dict:
        return self._replace(isAddingMarker=True, isDeletingMarker=False)

    def enable_delete_mode(self) -> Dict:
        return self._replace(isDeletingMarker=True, isAddingMarker=False)

    def disable_delete_mode(self) -> Dict:
        return self._replace(isDeletingMarker=False)

    # ------------------------------------------------------------------
    # Pins
    # ------------------------------------------------------------------

    def add_pin(self, latitude, longitude) -> Dict:
        """Drop a pin and leave add mode."""
        point = _point(latitude, longitude)
        return self._apply(lambda state: {'markers': list(state['markers']) + [point],
                                          'isAddingMarker': False})

    def remove_pin(self, latitude, longitude) -> Dict:
        """Remove the first pin at the given spot and leave delete mode.

        Removing a pin that is not on the map only leaves delete mode.  If
        the removed pin was selected, the selection is cleared too.
        """
        point = _point(latitude, longitude)

        def compute(state: Dict) -> Dict:
            markers = list(state['markers'])
            changes = {'isDeletingMarker': False}
            if point in markers:
                markers.remove(point)
                changes['markers'] = markers
                if state['selectedMarkerLocation'] == point:
                    changes.update(selectedMarkerLocation=None, weatherData=None)
            return changes

        return self._apply(compute)

    # ------------------------------------------------------------------
    # Forecast
    # ------------------------------------------------------------------

    def select(self, latitude, longitude) -> Dict:
        """Select a spot and load its forecast.

        A failed fetch is recorded in ``error`` rather than raised.
        """
        point = _point(latitude, longitude)
        self._replace(selectedMarkerLocation=point, isLoadingWeather=True, error=None)
        if self._weather is None:
            return self._replace(isLoadingWeather=False,
                                 error='Weather lookups are not configured')
        try:
            forecast = self._weather.get_forecast(point['latitude'], point['longitude'])
        except Exception as exc:
            logger.warning("Forecast for %s failed: %s", point, exc)
            return self._replace(isLoadingWeather=False,
                                 error=f'Failed to fetch weather data: {exc}')
        return self._replace(weatherData=forecast, isLoadingWeather=False)

    def clear_selection(self) -> Dict:
        return self._replace(weatherData=None, selectedMarkerLocation=None)

    def reset(self) -> Dict:
        with self._lock:
            self._state = dict(_INITIAL_STATE)
            return self._state
