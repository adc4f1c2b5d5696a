"""
Daily timetable generation for bus routes.
"""

import threading
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from ..core.exceptions import ResourceNotFoundError
from ..core.transport import Route
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _add_minutes(moment: time, minutes: int) -> datetime:
    return datetime.combine(date.min, moment) + timedelta(minutes=minutes)


@dataclass
class ScheduleEntry:
    """One departure of a vehicle on a route."""
    route_id: str
    vehicle_id: str
    driver_id: Optional[str]
    departure_time: time
    duration_minutes: int
    status: str = "scheduled"

    @property
    def arrival_time(self) -> time:
        return _add_minutes(self.departure_time, self.duration_minutes).time()

    def is_running_at(self, moment: time) -> bool:
        start = datetime.combine(date.min, self.departure_time)
        current = datetime.combine(date.min, moment)
        return start <= current < _add_minutes(self.departure_time, self.duration_minutes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route_id": self.route_id,
            "vehicle_id": self.vehicle_id,
            "driver_id": self.driver_id,
            "departure_time": self.departure_time.isoformat(),
            "arrival_time": self.arrival_time.isoformat(),
            "duration_minutes": self.duration_minutes,
            "status": self.status,
        }


class BusRouteScheduler:
    """Distributes each route's departures across its assigned vehicles.

    Departures are handed out round-robin: the i-th service time goes to
    vehicle ``i % n``. A route's schedule is rebuilt whenever its vehicle
    list changes; a route without vehicles has an empty schedule.
    """

    def __init__(self):
        self._routes: Dict[str, Route] = {}
        self._route_vehicles: Dict[str, List[str]] = {}
        self._vehicle_drivers: Dict[str, str] = {}
        self._schedules: Dict[str, List[ScheduleEntry]] = {}
        self._last_update = datetime.now()
        self._lock = threading.RLock()
        logger.info("BusRouteScheduler initialized")

    @property
    def last_update(self) -> datetime:
        return self._last_update

    @property
    def routes(self) -> Dict[str, Route]:
        return dict(self._routes)

    @property
    def route_vehicle_assignments(self) -> Dict[str, List[str]]:
        return {route_id: list(vehicles) for route_id, vehicles in self._route_vehicles.items()}

    @property
    def vehicle_driver_assignments(self) -> Dict[str, str]:
        return dict(self._vehicle_drivers)

    def add_route(self, route: Route) -> None:
        """Register (or refresh) a route, keeping any vehicles it already lists."""
        with self._lock:
            self._routes[route.id] = route
            vehicles = self._route_vehicles.setdefault(route.id, [])
            for vehicle_id in route.assigned_vehicles:
                if vehicle_id not in vehicles:
                    vehicles.append(vehicle_id)
            self._generate_route_schedule(route.id)
        logger.info("Route added to scheduler: %s", route.id)

    def remove_route(self, route_id: str) -> bool:
        with self._lock:
            if self._routes.pop(route_id, None) is None:
                return False
            self._route_vehicles.pop(route_id, None)
            self._schedules.pop(route_id, None)
        logger.info("Route removed from scheduler: %s", route_id)
        return True

    def assign_vehicle_to_route(self, route_id: str, vehicle_id: str) -> bool:
        with self._lock:
            vehicles = self._vehicles_for(route_id)
            if vehicle_id in vehicles:
                return False
            vehicles.append(vehicle_id)
            self._generate_route_schedule(route_id)
        logger.info("Vehicle %s assigned to route %s", vehicle_id, route_id)
        return True

    def unassign_vehicle_from_route(self, route_id: str, vehicle_id: str) -> bool:
        with self._lock:
            vehicles = self._vehicles_for(route_id)
            if vehicle_id not in vehicles:
                return False
            vehicles.remove(vehicle_id)
            self._generate_route_schedule(route_id)
        logger.info("Vehicle %s unassigned from route %s", vehicle_id, route_id)
        return True

    def assign_driver_to_vehicle(self, vehicle_id: str, driver_id: str) -> None:
        with self._lock:
            self._vehicle_drivers[vehicle_id] = driver_id
            self._refresh_routes_for(vehicle_id)
        logger.info("Driver %s assigned to vehicle %s", driver_id, vehicle_id)

    def unassign_driver_from_vehicle(self, vehicle_id: str) -> Optional[str]:
        with self._lock:
            driver_id = self._vehicle_drivers.pop(vehicle_id, None)
            if driver_id is not None:
                self._refresh_routes_for(vehicle_id)
        if driver_id is not None:
            logger.info("Driver %s unassigned from vehicle %s", driver_id, vehicle_id)
        return driver_id

    def _vehicles_for(self, route_id: str) -> List[str]:
        if route_id not in self._routes:
            raise ResourceNotFoundError(f"Route {route_id} is not registered with the scheduler")
        return self._route_vehicles[route_id]

    def _refresh_routes_for(self, vehicle_id: str) -> None:
        for route_id, vehicles in self._route_vehicles.items():
            if vehicle_id in vehicles:
                self._generate_route_schedule(route_id)

    def _generate_route_schedule(self, route_id: str) -> None:
        route = self._routes[route_id]
        vehicles = self._route_vehicles.get(route_id, [])
        if not vehicles:
            self._schedules[route_id] = []
            return

        entries = []
        for index, departure in enumerate(route.service_times()):
            vehicle_id = vehicles[index % len(vehicles)]
            entries.append(ScheduleEntry(
                route_id=route_id,
                vehicle_id=vehicle_id,
                driver_id=self._vehicle_drivers.get(vehicle_id),
                departure_time=departure,
                duration_minutes=route.estimated_duration,
            ))
        self._schedules[route_id] = entries
        self._last_update = datetime.now()

    def generate_all_schedules(self) -> None:
        with self._lock:
            for route_id in self._routes:
                self._generate_route_schedule(route_id)
        logger.info("All route schedules regenerated")

    def get_route_schedule(self, route_id: str) -> List[ScheduleEntry]:
        return sorted(self._schedules.get(route_id, []), key=lambda e: e.departure_time)

    def _all_entries(self) -> List[ScheduleEntry]:
        return [entry for entries in self._schedules.values() for entry in entries]

    def get_vehicle_schedule(self, vehicle_id: str) -> List[ScheduleEntry]:
        entries = [e for e in self._all_entries() if e.vehicle_id == vehicle_id]
        return sorted(entries, key=lambda e: e.departure_time)

    def get_driver_schedule(self, driver_id: str) -> List[ScheduleEntry]:
        entries = [e for e in self._all_entries() if e.driver_id == driver_id]
        return sorted(entries, key=lambda e: e.departure_time)

    def get_next_service(self, route_id: str, now: Optional[time] = None) -> Optional[ScheduleEntry]:
        now = now or datetime.now().time()
        return next((e for e in self.get_route_schedule(route_id) if e.departure_time > now), None)

    def get_running_services(self, now: Optional[time] = None) -> List[ScheduleEntry]:
        now = now or datetime.now().time()
        return [e for e in self._all_entries() if e.is_running_at(now)]

    def has_schedule_conflict(self, vehicle_id: str, departure: time, duration_minutes: int) -> bool:
        """True when the window overlaps one of the vehicle's departures, endpoints included."""
        start = datetime.combine(date.min, departure)
        end = _add_minutes(departure, duration_minutes)
        for entry in self.get_vehicle_schedule(vehicle_id):
            entry_start = datetime.combine(date.min, entry.departure_time)
            entry_end = _add_minutes(entry.departure_time, entry.duration_minutes)
            if not (end < entry_start or start > entry_end):
                return True
        return False

    def optimize_schedules(self) -> List[str]:
        """Regenerate all schedules and report routes carrying more vehicles than they need."""
        warnings = []
        with self._lock:
            for route_id, route in self._routes.items():
                vehicles = self._route_vehicles.get(route_id, [])
                optimal = max(1, len(route.service_times()) // 2)
                if len(vehicles) > optimal:
                    warnings.append(f"Route {route_id} has {len(vehicles)} vehicles for "
                                    f"{len(route.service_times())} services; consider redistribution")
            self.generate_all_schedules()
        for warning in warnings:
            logger.warning(warning)
        return warnings

    def get_statistics(self, now: Optional[time] = None) -> Dict[str, Any]:
        utilization = {}
        for route_id, route in self._routes.items():
            vehicle_count = len(self._route_vehicles.get(route_id, []))
            services = len(route.service_times())
            utilization[route_id] = services / vehicle_count if vehicle_count else 0.0
        return {
            "total_routes": len(self._routes),
            "active_routes": sum(1 for r in self._routes.values() if r.is_active),
            "vehicle_assignments": sum(len(v) for v in self._route_vehicles.values()),
            "driver_assignments": len(self._vehicle_drivers),
            "total_services": len(self._all_entries()),
            "running_services": len(self.get_running_services(now)),
            "services_per_vehicle": utilization,
            "last_update": self._last_update.isoformat(),
        }
