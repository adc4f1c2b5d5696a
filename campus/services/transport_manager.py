"""
Transport management service: fleet, drivers, routes and maintenance.
"""

from collections import Counter
from datetime import date, time, timedelta
from typing import Any, Dict, List, Optional

from ..core.enums import DriverStatus, MaintenancePriority, MaintenanceStatus, RouteType, VehicleType
from ..core.exceptions import DuplicateEntityError, InvalidStateError
from ..core.transport import Bus, Driver, MaintenanceRecord, Route, Van, Vehicle
from ..persistence.repositories import (
    DriverRepository, MaintenanceRepository, RouteRepository, VehicleRepository,
)
from .base_manager import BaseManager
from .notification_service import NotificationService
from .route_scheduler import BusRouteScheduler, ScheduleEntry

LOW_FUEL_PERCENTAGE = 25.0


class TransportManager(BaseManager[Vehicle]):
    """Runs the campus fleet.

    Vehicles are the primary managed entity. Route and driver assignments
    go through the BusRouteScheduler so that timetables stay in step with
    the stored entities.
    """

    entity_label = "Vehicle"
    id_prefix = "V"

    def __init__(self, vehicle_repository: VehicleRepository, driver_repository: DriverRepository,
                 route_repository: RouteRepository, maintenance_repository: MaintenanceRepository,
                 scheduler: Optional[BusRouteScheduler] = None,
                 notification_service: Optional[NotificationService] = None):
        super().__init__(vehicle_repository, notification_service)
        self._drivers = driver_repository
        self._routes = route_repository
        self._maintenance = maintenance_repository
        self._scheduler = scheduler or BusRouteScheduler()
        self._sync_scheduler()
        self._logger.info("TransportManager initialized")

    @property
    def scheduler(self) -> BusRouteScheduler:
        return self._scheduler

    def _sync_scheduler(self) -> None:
        for route in self._routes.find_all():
            self._scheduler.add_route(route)
        for vehicle in self.get_all():
            if vehicle.assigned_driver_id:
                self._scheduler.assign_driver_to_vehicle(vehicle.id, vehicle.assigned_driver_id)

    # Vehicles

    def create_bus(self, registration_number: str, model: str, manufacturer: str, year: int,
                   seating_capacity: int) -> Bus:
        with self._lock:
            bus = Bus(self._next_id(), registration_number, model, manufacturer, year, seating_capacity)
            return self.create(bus)

    def create_van(self, registration_number: str, model: str, manufacturer: str, year: int,
                   capacity: int, purpose: Optional[str] = None) -> Van:
        with self._lock:
            van = Van(self._next_id(), registration_number, model, manufacturer, year, capacity)
            if purpose is not None:
                van.configure_purpose(purpose)
            return self.create(van)

    def create(self, vehicle: Vehicle) -> Vehicle:
        with self._lock:
            existing = self._repository.find_by_registration(vehicle.registration_number)
            if existing is not None and existing.id != vehicle.id:
                raise DuplicateEntityError(f"Registration {vehicle.registration_number} is already in use")
            return super().create(vehicle)

    def delete(self, vehicle_id: str) -> bool:
        with self._lock:
            vehicle = self.get(vehicle_id)
            if vehicle.assigned_route_id:
                self.unassign_vehicle_from_route(vehicle_id)
            if vehicle.assigned_driver_id:
                self.unassign_driver(vehicle_id)
            return super().delete(vehicle_id)

    def refuel_vehicle(self, vehicle_id: str, amount: float) -> Vehicle:
        return self._modify(vehicle_id, lambda v: v.refuel(amount))

    def record_trip(self, vehicle_id: str, distance: float) -> Vehicle:
        """Log a completed trip: mileage, fuel burned and the driver's trip count."""
        with self._lock:
            vehicle = self.get(vehicle_id)
            fuel_needed = getattr(vehicle, "fuel_needed", None)
            if fuel_needed is not None and distance > 0:
                vehicle.consume_fuel(fuel_needed(distance))
            vehicle.add_mileage(distance)
            self._repository.save(vehicle)
            if vehicle.assigned_driver_id:
                driver = self._drivers.find_by_id(vehicle.assigned_driver_id)
                if driver is not None:
                    driver.end_trip()
                    self._drivers.save(driver)
            return vehicle

    # Drivers

    def add_driver(self, driver: Driver) -> Driver:
        with self._lock:
            if self._drivers.exists(driver.id):
                raise DuplicateEntityError(f"Driver {driver.id} already exists")
            self._drivers.save(driver)
        self._logger.info("Added driver %s", driver.id)
        return driver

    def create_driver(self, name: str, license_number: str, license_type: str, license_expiry: date,
                      experience_years: int = 0, phone: Optional[str] = None,
                      email: Optional[str] = None) -> Driver:
        with self._lock:
            driver = Driver(self._next_id(self._drivers, "D"), name, license_number, license_type,
                            license_expiry, experience_years)
            if phone or email:
                driver.set_contact(phone, email)
            return self.add_driver(driver)

    def get_driver(self, driver_id: str) -> Optional[Driver]:
        return self._drivers.find_by_id(driver_id)

    def get_all_drivers(self) -> List[Driver]:
        return self._drivers.find_all()

    def update_driver(self, driver: Driver) -> Driver:
        self._require(self._drivers, driver.id, "Driver")
        return self._drivers.save(driver)

    def delete_driver(self, driver_id: str) -> bool:
        with self._lock:
            driver = self._require(self._drivers, driver_id, "Driver")
            if driver.assigned_vehicle_id:
                self.unassign_driver(driver.assigned_vehicle_id)
            self._drivers.delete(driver_id)
        self._logger.info("Deleted driver %s", driver_id)
        return True

    def rate_driver(self, driver_id: str, rating: float) -> float:
        with self._lock:
            driver = self._require(self._drivers, driver_id, "Driver")
            new_rating = driver.update_rating(rating)
            self._drivers.save(driver)
            return new_rating

    def set_driver_on_leave(self, driver_id: str) -> Driver:
        with self._lock:
            driver = self._require(self._drivers, driver_id, "Driver")
            if driver.assigned_vehicle_id:
                self.unassign_driver(driver.assigned_vehicle_id)
                driver = self._require(self._drivers, driver_id, "Driver")
            driver.set_on_leave()
            self._drivers.save(driver)
            return driver

    # Routes

    def add_route(self, route: Route) -> Route:
        with self._lock:
            if self._routes.exists(route.id):
                raise DuplicateEntityError(f"Route {route.id} already exists")
            self._routes.save(route)
            self._scheduler.add_route(route)
        self._logger.info("Added route %s", route.id)
        return route

    def create_route(self, name: str, start_point: str, end_point: str,
                     stops: Optional[List[str]] = None, route_type: RouteType = RouteType.LINEAR,
                     fare: Optional[float] = None) -> Route:
        with self._lock:
            route = Route(self._next_id(self._routes, "R"), name, start_point, end_point)
            for stop in stops or []:
                route.add_stop(stop)
            route.route_type = route_type
            if fare is not None:
                route.fare = fare
            return self.add_route(route)

    def get_route(self, route_id: str) -> Optional[Route]:
        return self._routes.find_by_id(route_id)

    def get_all_routes(self) -> List[Route]:
        return self._routes.find_all()

    def update_route(self, route: Route) -> Route:
        with self._lock:
            self._require(self._routes, route.id, "Route")
            self._routes.save(route)
            self._scheduler.add_route(route)
            return route

    def delete_route(self, route_id: str) -> bool:
        with self._lock:
            route = self._require(self._routes, route_id, "Route")
            for vehicle_id in route.assigned_vehicles:
                vehicle = self.read(vehicle_id)
                if vehicle is not None:
                    vehicle.assign_route(None)
                    self._repository.save(vehicle)
                    self._update_driver_route(vehicle)
            self._scheduler.remove_route(route_id)
            self._routes.delete(route_id)
        self._logger.info("Deleted route %s", route_id)
        return True

    # Assignments

    def assign_vehicle_to_route(self, vehicle_id: str, route_id: str) -> Vehicle:
        with self._lock:
            vehicle = self.get(vehicle_id)
            route = self._require(self._routes, route_id, "Route")
            if vehicle.assigned_route_id and vehicle.assigned_route_id != route_id:
                self.unassign_vehicle_from_route(vehicle_id)
                vehicle = self.get(vehicle_id)

            self._scheduler.assign_vehicle_to_route(route_id, vehicle_id)
            route.add_vehicle(vehicle_id)
            vehicle.assign_route(route_id)
            self._routes.save(route)
            self._repository.save(vehicle)
            self._update_driver_route(vehicle)
        self._logger.info("Vehicle %s assigned to route %s", vehicle_id, route_id)
        return vehicle

    def unassign_vehicle_from_route(self, vehicle_id: str) -> Vehicle:
        with self._lock:
            vehicle = self.get(vehicle_id)
            route_id = vehicle.assigned_route_id
            if route_id is None:
                return vehicle
            route = self._routes.find_by_id(route_id)
            if route is not None:
                self._scheduler.unassign_vehicle_from_route(route_id, vehicle_id)
                route.remove_vehicle(vehicle_id)
                self._routes.save(route)
            vehicle.assign_route(None)
            self._repository.save(vehicle)
            self._update_driver_route(vehicle)
        self._logger.info("Vehicle %s unassigned from route %s", vehicle_id, route_id)
        return vehicle

    def assign_driver_to_vehicle(self, driver_id: str, vehicle_id: str) -> Driver:
        with self._lock:
            vehicle = self.get(vehicle_id)
            driver = self._require(self._drivers, driver_id, "Driver")
            if vehicle.assigned_driver_id == driver_id:
                return driver
            if driver.assigned_vehicle_id:
                raise InvalidStateError(f"Driver {driver_id} is already assigned to {driver.assigned_vehicle_id}")
            if vehicle.assigned_driver_id:
                self.unassign_driver(vehicle_id)
                vehicle = self.get(vehicle_id)

            driver.assign_vehicle(vehicle_id, vehicle.vehicle_type)
            driver.assign_route(vehicle.assigned_route_id)
            vehicle.assign_driver(driver_id)
            self._scheduler.assign_driver_to_vehicle(vehicle_id, driver_id)
            self._drivers.save(driver)
            self._repository.save(vehicle)
        self._logger.info("Driver %s assigned to vehicle %s", driver_id, vehicle_id)
        return driver

    def unassign_driver(self, vehicle_id: str) -> Optional[Driver]:
        with self._lock:
            vehicle = self.get(vehicle_id)
            driver_id = vehicle.assigned_driver_id
            if driver_id is None:
                return None
            self._scheduler.unassign_driver_from_vehicle(vehicle_id)
            vehicle.assign_driver(None)
            self._repository.save(vehicle)
            driver = self._drivers.find_by_id(driver_id)
            if driver is not None:
                driver.unassign_vehicle()
                driver.assign_route(None)
                self._drivers.save(driver)
            return driver

    def _update_driver_route(self, vehicle: Vehicle) -> None:
        if not vehicle.assigned_driver_id:
            return
        driver = self._drivers.find_by_id(vehicle.assigned_driver_id)
        if driver is not None:
            driver.assign_route(vehicle.assigned_route_id)
            self._drivers.save(driver)

    # Schedules

    def get_route_schedule(self, route_id: str) -> List[ScheduleEntry]:
        self._require(self._routes, route_id, "Route")
        return self._scheduler.get_route_schedule(route_id)

    def get_vehicle_schedule(self, vehicle_id: str) -> List[ScheduleEntry]:
        return self._scheduler.get_vehicle_schedule(vehicle_id)

    def get_driver_schedule(self, driver_id: str) -> List[ScheduleEntry]:
        return self._scheduler.get_driver_schedule(driver_id)

    def get_next_service(self, route_id: str, now: Optional[time] = None) -> Optional[ScheduleEntry]:
        return self._scheduler.get_next_service(route_id, now)

    # Maintenance

    def schedule_maintenance(self, vehicle_id: str, maintenance_type: str, description: str,
                             scheduled_date: Optional[date] = None,
                             priority: MaintenancePriority = MaintenancePriority.MEDIUM) -> MaintenanceRecord:
        with self._lock:
            vehicle = self.get(vehicle_id)
            record = MaintenanceRecord(self._next_id(self._maintenance, "M"), vehicle_id,
                                       maintenance_type, description, scheduled_date, priority)
            vehicle.add_maintenance_record(record)
            self._maintenance.save(record)
            self._repository.save(vehicle)
        self._logger.info("Scheduled maintenance %s for vehicle %s", record.id, vehicle_id)
        return record

    def start_maintenance(self, record_id: str, performed_by: str, on: Optional[date] = None) -> MaintenanceRecord:
        with self._lock:
            record = self._require(self._maintenance, record_id, "Maintenance record")
            record.start(performed_by, on)
            vehicle = self.get(record.vehicle_id)
            vehicle.start_maintenance()
            self._maintenance.save(record)
            self._repository.save(vehicle)
            return record

    def complete_maintenance(self, record_id: str, cost: float, parts_replaced: Optional[str] = None,
                             on: Optional[date] = None) -> MaintenanceRecord:
        with self._lock:
            record = self._require(self._maintenance, record_id, "Maintenance record")
            record.complete(cost, parts_replaced, on)
            vehicle = self.get(record.vehicle_id)
            vehicle.complete_maintenance(on)
            self._maintenance.save(record)
            self._repository.save(vehicle)
        self._logger.info("Completed maintenance %s (cost %.2f)", record_id, cost)
        return record

    def cancel_maintenance(self, record_id: str, reason: str) -> MaintenanceRecord:
        with self._lock:
            record = self._require(self._maintenance, record_id, "Maintenance record")
            record.cancel(reason)
            self._maintenance.save(record)
            vehicle = self.get(record.vehicle_id)
            if vehicle.under_maintenance and not self._open_maintenance(vehicle.id):
                vehicle.release_from_maintenance()
                self._repository.save(vehicle)
            return record

    def _open_maintenance(self, vehicle_id: str) -> List[MaintenanceRecord]:
        open_states = (MaintenanceStatus.SCHEDULED, MaintenanceStatus.IN_PROGRESS)
        return [r for r in self._maintenance.find_by_vehicle(vehicle_id) if r.status in open_states]

    def get_maintenance_record(self, record_id: str) -> Optional[MaintenanceRecord]:
        return self._maintenance.find_by_id(record_id)

    def get_maintenance_history(self, vehicle_id: str) -> List[MaintenanceRecord]:
        return self._maintenance.find_by_vehicle(vehicle_id)

    def get_all_maintenance_records(self) -> List[MaintenanceRecord]:
        return self._maintenance.find_all()

    # Finders

    def get_available_vehicles(self) -> List[Vehicle]:
        return [v for v in self.get_all() if v.is_available()]

    def get_vehicles_by_type(self, vehicle_type: VehicleType) -> List[Vehicle]:
        return self._repository.find_by_type(vehicle_type)

    def get_vehicles_needing_service(self, today: Optional[date] = None) -> List[Vehicle]:
        return [v for v in self.get_all() if v.needs_service(today)]

    def get_available_drivers(self) -> List[Driver]:
        return [d for d in self.get_all_drivers() if d.status == DriverStatus.AVAILABLE and d.is_active]

    def get_drivers_needing_license_renewal(self, today: Optional[date] = None) -> List[Driver]:
        return [d for d in self.get_all_drivers() if d.needs_license_renewal(today)]

    def get_active_routes(self) -> List[Route]:
        return self._routes.find_active()

    def get_routes_by_stop(self, stop: str) -> List[Route]:
        return self._routes.find_by_stop(stop)

    # Statistics and reports

    def get_statistics(self) -> Dict[str, Any]:
        vehicles = self.get_all()
        drivers = self.get_all_drivers()
        records = self.get_all_maintenance_records()
        by_status = Counter(v.status for v in vehicles)
        completed = [r for r in records if r.status == MaintenanceStatus.COMPLETED]
        return {
            "total_vehicles": len(vehicles),
            "active_vehicles": by_status.get("active", 0),
            "inactive_vehicles": by_status.get("inactive", 0),
            "maintenance_vehicles": by_status.get("maintenance", 0),
            "vehicles_by_type": dict(Counter(v.vehicle_type.value for v in vehicles)),
            "fleet_capacity": sum(v.capacity for v in vehicles),
            "total_drivers": len(drivers),
            "available_drivers": sum(1 for d in drivers if d.status == DriverStatus.AVAILABLE),
            "average_driver_rating": sum(d.rating for d in drivers) / len(drivers) if drivers else 0.0,
            "total_routes": self._routes.count(),
            "active_routes": len(self.get_active_routes()),
            "maintenance_records": len(records),
            "total_maintenance_cost": sum(r.cost for r in completed),
            "estimated_maintenance_cost": sum(v.calculate_maintenance_cost() for v in vehicles),
        }

    def generate_fleet_report(self, today: Optional[date] = None) -> Dict[str, Any]:
        return {
            "vehicles": [
                {
                    "vehicle_id": v.id,
                    "type": v.vehicle_type.value,
                    "registration_number": v.registration_number,
                    "status": v.status,
                    "fuel_percentage": v.fuel_percentage,
                    "mileage": v.mileage,
                    "route_id": v.assigned_route_id,
                    "driver_id": v.assigned_driver_id,
                    "needs_service": v.needs_service(today),
                    "estimated_maintenance_cost": v.calculate_maintenance_cost(),
                }
                for v in self.get_all()
            ],
            "routes": [
                {
                    "route_id": r.id,
                    "name": r.name,
                    "stops": len(r.stops),
                    "vehicles": len(r.assigned_vehicles),
                    "daily_services": len(self._scheduler.get_route_schedule(r.id)),
                }
                for r in self.get_all_routes()
            ],
            "scheduler": self._scheduler.get_statistics(),
        }

    def get_alerts(self, today: Optional[date] = None) -> List[str]:
        today = today or date.today()
        alerts = []
        for vehicle in self.get_all():
            if vehicle.needs_service(today):
                alerts.append(f"Service due: vehicle {vehicle.id} ({vehicle.registration_number})")
            if vehicle.fuel_percentage < LOW_FUEL_PERCENTAGE:
                alerts.append(f"Low fuel: vehicle {vehicle.id} at {vehicle.fuel_percentage:.0f}%")
        for driver in self.get_all_drivers():
            if driver.needs_license_renewal(today):
                alerts.append(f"License renewal: driver {driver.id} expires {driver.license_expiry.isoformat()}")
        for record in self.get_all_maintenance_records():
            if record.is_overdue(today):
                alerts.append(f"Overdue maintenance: {record.id} for vehicle {record.vehicle_id}")
        return alerts

    def load_sample_data(self, today: Optional[date] = None) -> None:
        today = today or date.today()
        if self._drivers.exists("D001"):
            return

        john = Driver("D001", "John Smith", "DL123456", "CDL-B", today + timedelta(days=730), 5)
        john.set_contact(phone="+1-555-0201")
        mike = Driver("D002", "Mike Johnson", "DL789012", "CDL-A", today + timedelta(days=365), 8)
        mike.set_contact(phone="+1-555-0202")
        self.add_driver(john)
        self.add_driver(mike)

        downtown = Route("R001", "Campus to Downtown", "Main Gate", "Downtown Terminal")
        downtown.add_stop("Library")
        downtown.add_stop("Student Center")
        downtown.description = "Main campus to city center"
        circle = Route("R002", "Campus Circle", "Dormitory A", "Dormitory A")
        for stop in ("Academic Building", "Cafeteria", "Sports Complex"):
            circle.add_stop(stop)
        circle.route_type = RouteType.CIRCULAR
        circle.operating_days = "DAILY"
        self.add_route(downtown)
        self.add_route(circle)

        bus1 = Bus("V001", "ABC123", "Transit", "Ford", 2020, 40)
        bus1.add_mileage(45000)
        bus2 = Bus("V002", "XYZ789", "Sprinter", "Mercedes", 2019, 25)
        bus2.add_mileage(52000)
        van = Van("V003", "DEF456", "Hiace", "Toyota", 2021, 12)
        van.add_mileage(28000)
        for vehicle in (bus1, bus2, van):
            self.create(vehicle)

        self.assign_vehicle_to_route("V001", "R001")
        self.assign_vehicle_to_route("V002", "R002")
        self.assign_driver_to_vehicle("D001", "V001")
        self.assign_driver_to_vehicle("D002", "V002")

        serviced = today - timedelta(days=30)
        record = self.schedule_maintenance("V001", "Regular Service",
                                           "Oil change, brake inspection, tire rotation", serviced)
        self.start_maintenance(record.id, "Campus Garage", on=serviced)
        self.complete_maintenance(record.id, 250.0, "Oil filter", on=serviced)
        self._logger.info("Loaded sample transport data")
