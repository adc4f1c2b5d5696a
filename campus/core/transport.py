"""
Transport entities: vehicles, drivers, routes and maintenance records.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from .abstract_entity import AbstractEntity, to_iso, parse_date, parse_time
from .enums import (
    DriverStatus, LICENSE_VEHICLE_TYPES, MaintenancePriority, MaintenanceStatus,
    RouteType, VanPurpose, VehicleType,
)
from .exceptions import InvalidStateError, ValidationError


SERVICE_INTERVAL_MONTHS = 6
MINIMUM_OPERATING_FUEL = 10.0
REFERENCE_YEAR = 2024


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(start.day, calendar.monthrange(year, month)[1]))


class Vehicle(AbstractEntity):
    """Base class for every vehicle in the campus fleet."""

    vehicle_type = VehicleType.CAR
    default_fuel_capacity = 50.0

    def __init__(self, vehicle_id: str, registration_number: str, model: str,
                 manufacturer: str, year: int, capacity: int):
        super().__init__(vehicle_id)
        if capacity <= 0:
            raise ValidationError("Vehicle capacity must be positive")
        if year < 1900:
            raise ValidationError(f"Invalid manufacturing year: {year}")
        self._registration_number = registration_number
        self._model = model
        self._manufacturer = manufacturer
        self._year = year
        self._capacity = capacity
        self._fuel_capacity = self.default_fuel_capacity
        self._fuel_level = self._fuel_capacity
        self._mileage = 0.0
        self._is_active = True
        self._under_maintenance = False
        self._engine_running = False
        self._current_location = "Depot"
        self._last_service_date: Optional[date] = None
        self._next_service_date: Optional[date] = None
        self._assigned_driver_id: Optional[str] = None
        self._assigned_route_id: Optional[str] = None
        self._maintenance_history: List[str] = []

    @property
    def registration_number(self) -> str:
        return self._registration_number

    @property
    def model(self) -> str:
        return self._model

    @property
    def manufacturer(self) -> str:
        return self._manufacturer

    @property
    def year(self) -> int:
        return self._year

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def fuel_capacity(self) -> float:
        return self._fuel_capacity

    @property
    def fuel_level(self) -> float:
        return self._fuel_level

    @property
    def fuel_percentage(self) -> float:
        return self._fuel_level / self._fuel_capacity * 100

    @property
    def mileage(self) -> float:
        return self._mileage

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def under_maintenance(self) -> bool:
        return self._under_maintenance

    @property
    def engine_running(self) -> bool:
        return self._engine_running

    @property
    def current_location(self) -> str:
        return self._current_location

    @property
    def last_service_date(self) -> Optional[date]:
        return self._last_service_date

    @property
    def next_service_date(self) -> Optional[date]:
        return self._next_service_date

    @next_service_date.setter
    def next_service_date(self, value: Optional[date]) -> None:
        self._next_service_date = value
        self.touch()

    @property
    def assigned_driver_id(self) -> Optional[str]:
        return self._assigned_driver_id

    @property
    def assigned_route_id(self) -> Optional[str]:
        return self._assigned_route_id

    @property
    def maintenance_history(self) -> List[str]:
        return list(self._maintenance_history)

    @property
    def status(self) -> str:
        if self._under_maintenance:
            return "maintenance"
        return "active" if self._is_active else "inactive"

    def activate(self) -> None:
        self._is_active = True
        self.touch()

    def deactivate(self) -> None:
        self._is_active = False
        self.touch()

    def is_available(self) -> bool:
        return self._is_active and not self._under_maintenance and self._fuel_level > MINIMUM_OPERATING_FUEL

    def refuel(self, amount: float) -> float:
        """Add fuel, capped at tank capacity. Returns the new level."""
        if amount <= 0:
            raise ValidationError("Fuel amount must be positive")
        self._fuel_level = min(self._fuel_capacity, self._fuel_level + amount)
        self.touch()
        return self._fuel_level

    def consume_fuel(self, amount: float) -> None:
        if amount <= 0:
            raise ValidationError("Fuel amount must be positive")
        if amount > self._fuel_level:
            raise ValidationError(f"Insufficient fuel in vehicle {self.id}")
        self._fuel_level -= amount
        self.touch()

    def add_mileage(self, distance: float) -> None:
        if distance < 0:
            raise ValidationError("Distance cannot be negative")
        self._mileage += distance
        self.touch()

    def needs_service(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._next_service_date is not None and self._next_service_date <= today

    def add_maintenance_record(self, record: "MaintenanceRecord") -> None:
        if record.id not in self._maintenance_history:
            self._maintenance_history.append(record.id)
        if record.status in (MaintenanceStatus.SCHEDULED, MaintenanceStatus.IN_PROGRESS):
            self._under_maintenance = True
            self._is_active = False
        self.touch()

    def start_maintenance(self) -> None:
        self._under_maintenance = True
        self._is_active = False
        self.touch()

    def complete_maintenance(self, today: Optional[date] = None) -> None:
        today = today or date.today()
        self._under_maintenance = False
        self._is_active = True
        self._last_service_date = today
        self._next_service_date = _add_months(today, SERVICE_INTERVAL_MONTHS)
        self.touch()

    def release_from_maintenance(self) -> None:
        """Return to service without recording a completed service."""
        self._under_maintenance = False
        self._is_active = True
        self.touch()

    def assign_driver(self, driver_id: Optional[str]) -> None:
        self._assigned_driver_id = driver_id
        self.touch()

    def assign_route(self, route_id: Optional[str]) -> None:
        self._assigned_route_id = route_id
        self.touch()

    def start_engine(self) -> None:
        if not self.is_available():
            raise InvalidStateError(f"Vehicle {self.id} is not available for operation")
        self._engine_running = True
        self._current_location = "In Transit"
        self.touch()

    def stop_engine(self) -> None:
        self._engine_running = False
        self._current_location = "Depot"
        self.touch()

    def calculate_maintenance_cost(self) -> float:
        return 1000.0 + (REFERENCE_YEAR - self._year) * 100.0 + self._mileage * 0.05

    def is_ready_for_service(self) -> bool:
        return self.is_available() and not self.needs_service()

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "vehicle_type": self.vehicle_type.value,
            "registration_number": self._registration_number,
            "model": self._model,
            "manufacturer": self._manufacturer,
            "year": self._year,
            "capacity": self._capacity,
            "fuel_capacity": self._fuel_capacity,
            "fuel_level": self._fuel_level,
            "mileage": self._mileage,
            "is_active": self._is_active,
            "under_maintenance": self._under_maintenance,
            "status": self.status,
            "current_location": self._current_location,
            "last_service_date": to_iso(self._last_service_date),
            "next_service_date": to_iso(self._next_service_date),
            "assigned_driver_id": self._assigned_driver_id,
            "assigned_route_id": self._assigned_route_id,
            "maintenance_history": list(self._maintenance_history),
        })
        return data

    def _restore(self, data: Dict[str, Any]) -> None:
        self._fuel_capacity = data.get("fuel_capacity", self._fuel_capacity)
        self._fuel_level = data.get("fuel_level", self._fuel_capacity)
        self._mileage = data.get("mileage", 0.0)
        self._is_active = data.get("is_active", True)
        self._under_maintenance = data.get("under_maintenance", False)
        self._current_location = data.get("current_location", "Depot")
        self._last_service_date = parse_date(data.get("last_service_date"))
        self._next_service_date = parse_date(data.get("next_service_date"))
        self._assigned_driver_id = data.get("assigned_driver_id")
        self._assigned_route_id = data.get("assigned_route_id")
        self._maintenance_history = list(data.get("maintenance_history", []))
        self._restore_base(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vehicle":
        vehicle = cls(data["id"], data["registration_number"], data["model"],
                      data["manufacturer"], data["year"], data["capacity"])
        vehicle._restore(data)
        return vehicle


class Bus(Vehicle):
    """A large passenger bus serving fixed routes."""

    vehicle_type = VehicleType.BUS
    default_fuel_capacity = 200.0
    average_speed = 40.0
    fuel_efficiency = 8.0

    def __init__(self, vehicle_id: str, registration_number: str, model: str,
                 manufacturer: str, year: int, seating_capacity: int):
        super().__init__(vehicle_id, registration_number, model, manufacturer, year, seating_capacity)
        self._standing_capacity = seating_capacity // 2
        self._has_air_conditioning = False
        self._has_wifi = False
        self._is_accessible = False
        self._amenities: List[str] = ["First Aid Kit", "Fire Extinguisher", "Emergency Exit"]

    @property
    def standing_capacity(self) -> int:
        return self._standing_capacity

    @property
    def total_capacity(self) -> int:
        return self._capacity + self._standing_capacity

    @property
    def amenities(self) -> List[str]:
        return list(self._amenities)

    @property
    def has_air_conditioning(self) -> bool:
        return self._has_air_conditioning

    @property
    def has_wifi(self) -> bool:
        return self._has_wifi

    @property
    def is_accessible(self) -> bool:
        return self._is_accessible

    def _toggle_amenity(self, amenity: str, enabled: bool) -> None:
        if enabled:
            self.add_amenity(amenity)
        else:
            self.remove_amenity(amenity)

    def set_air_conditioning(self, enabled: bool) -> None:
        self._has_air_conditioning = enabled
        self._toggle_amenity("Air Conditioning", enabled)

    def set_wifi(self, enabled: bool) -> None:
        self._has_wifi = enabled
        self._toggle_amenity("WiFi", enabled)

    def set_accessible(self, enabled: bool) -> None:
        self._is_accessible = enabled
        self._toggle_amenity("Wheelchair Accessible", enabled)

    def add_amenity(self, amenity: str) -> None:
        if amenity not in self._amenities:
            self._amenities.append(amenity)
            self.touch()

    def remove_amenity(self, amenity: str) -> None:
        if amenity in self._amenities:
            self._amenities.remove(amenity)
            self.touch()

    def start_engine(self) -> None:
        if not self.is_available():
            raise InvalidStateError(f"Bus {self.id} is not available for operation")
        if self._fuel_level < 20.0:
            raise InvalidStateError("Insufficient fuel to start engine")
        super().start_engine()

    def calculate_maintenance_cost(self) -> float:
        return (5000.0 + (REFERENCE_YEAR - self._year) * 200.0
                + self._mileage * 0.1 + len(self._amenities) * 100.0)

    def is_ready_for_service(self) -> bool:
        return (self.is_available() and self._fuel_level > 25.0
                and not self.needs_service() and self._assigned_route_id is not None)

    def trip_time_hours(self, distance: float) -> float:
        return distance / self.average_speed

    def fuel_needed(self, distance: float) -> float:
        return distance / self.fuel_efficiency

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "standing_capacity": self._standing_capacity,
            "has_air_conditioning": self._has_air_conditioning,
            "has_wifi": self._has_wifi,
            "is_accessible": self._is_accessible,
            "amenities": list(self._amenities),
        })
        return data

    def _restore(self, data: Dict[str, Any]) -> None:
        super()._restore(data)
        self._standing_capacity = data.get("standing_capacity", self._standing_capacity)
        self._has_air_conditioning = data.get("has_air_conditioning", False)
        self._has_wifi = data.get("has_wifi", False)
        self._is_accessible = data.get("is_accessible", False)
        self._amenities = list(data.get("amenities", self._amenities))


class Van(Vehicle):
    """A smaller vehicle configurable for passengers, cargo or both."""

    vehicle_type = VehicleType.VAN
    default_fuel_capacity = 80.0
    average_speed = 60.0
    fuel_efficiency = 12.0

    def __init__(self, vehicle_id: str, registration_number: str, model: str,
                 manufacturer: str, year: int, capacity: int):
        super().__init__(vehicle_id, registration_number, model, manufacturer, year, capacity)
        self._cargo_capacity = 5.0
        self._purpose = VanPurpose.PASSENGER
        self._special_equipment: List[str] = []

    @property
    def cargo_capacity(self) -> float:
        """Cargo volume in cubic metres."""
        return self._cargo_capacity

    @property
    def purpose(self) -> VanPurpose:
        return self._purpose

    @property
    def special_equipment(self) -> List[str]:
        return list(self._special_equipment)

    def configure_purpose(self, purpose) -> None:
        try:
            purpose = VanPurpose(purpose)
        except ValueError as e:
            raise ValidationError(f"Invalid van purpose: {purpose}") from e

        if purpose == VanPurpose.PASSENGER:
            self._capacity = max(self._capacity, 8)
            self._cargo_capacity = 2.0
        elif purpose == VanPurpose.CARGO:
            self._capacity = 2
            self._cargo_capacity = 8.0
        else:
            self._capacity = 5
            self._cargo_capacity = 4.0
        self._purpose = purpose
        self.touch()

    def add_special_equipment(self, equipment: str) -> None:
        if equipment not in self._special_equipment:
            self._special_equipment.append(equipment)
            self.touch()

    def remove_special_equipment(self, equipment: str) -> None:
        if equipment in self._special_equipment:
            self._special_equipment.remove(equipment)
            self.touch()

    def load_capacity(self) -> float:
        """Maximum load in kilograms for the configured purpose."""
        if self._purpose == VanPurpose.PASSENGER:
            return self._capacity * 75.0
        if self._purpose == VanPurpose.CARGO:
            return self._cargo_capacity * 200.0
        return self._capacity * 75.0 + self._cargo_capacity * 150.0

    def start_engine(self) -> None:
        if self._fuel_level < 10.0:
            raise InvalidStateError("Insufficient fuel to start engine")
        super().start_engine()

    def calculate_maintenance_cost(self) -> float:
        return (2500.0 + (REFERENCE_YEAR - self._year) * 150.0 + self._mileage * 0.05
                + len(self._special_equipment) * 50.0 + self._cargo_capacity * 20.0)

    def is_ready_for_service(self) -> bool:
        return self.is_available() and self._fuel_level > 15.0 and not self.needs_service()

    def trip_time_hours(self, distance: float) -> float:
        return distance / self.average_speed

    def fuel_needed(self, distance: float) -> float:
        return distance / self.fuel_efficiency

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "cargo_capacity": self._cargo_capacity,
            "purpose": self._purpose.value,
            "special_equipment": list(self._special_equipment),
        })
        return data

    def _restore(self, data: Dict[str, Any]) -> None:
        super()._restore(data)
        self._cargo_capacity = data.get("cargo_capacity", self._cargo_capacity)
        self._purpose = VanPurpose(data.get("purpose", VanPurpose.PASSENGER.value))
        self._special_equipment = list(data.get("special_equipment", []))


_VEHICLE_CLASSES = {
    VehicleType.BUS: Bus,
    VehicleType.VAN: Van,
}


def vehicle_from_dict(data: Dict[str, Any]) -> Vehicle:
    """Rebuild the right Vehicle subclass from stored data."""
    vehicle_cls = _VEHICLE_CLASSES.get(VehicleType(data["vehicle_type"]), Vehicle)
    return vehicle_cls.from_dict(data)


class Driver(AbstractEntity):
    """A licensed driver who can be assigned to vehicles and routes."""

    def __init__(self, driver_id: str, name: str, license_number: str, license_type: str,
                 license_expiry: date, experience_years: int = 0):
        super().__init__(driver_id)
        if not name or not name.strip():
            raise ValidationError("Driver name cannot be empty")
        if experience_years < 0:
            raise ValidationError("Experience cannot be negative")
        self._name = name
        self._license_number = license_number
        self._license_type = license_type.upper()
        self._license_expiry = license_expiry
        self._experience_years = experience_years
        self._phone: Optional[str] = None
        self._email: Optional[str] = None
        self._status = DriverStatus.AVAILABLE
        self._is_active = True
        self._assigned_vehicle_id: Optional[str] = None
        self._assigned_route_id: Optional[str] = None
        self._total_trips = 0
        self._rating = 5.0
        self._certifications: List[str] = ["Defensive Driving", "First Aid", "Vehicle Safety"]
        self._performance_notes: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def license_number(self) -> str:
        return self._license_number

    @property
    def license_type(self) -> str:
        return self._license_type

    @property
    def license_expiry(self) -> date:
        return self._license_expiry

    @property
    def experience_years(self) -> int:
        return self._experience_years

    @property
    def phone(self) -> Optional[str]:
        return self._phone

    @property
    def email(self) -> Optional[str]:
        return self._email

    def set_contact(self, phone: Optional[str] = None, email: Optional[str] = None) -> None:
        self._phone = phone
        self._email = email
        self.touch()

    @property
    def status(self) -> DriverStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def assigned_vehicle_id(self) -> Optional[str]:
        return self._assigned_vehicle_id

    @property
    def assigned_route_id(self) -> Optional[str]:
        return self._assigned_route_id

    @property
    def total_trips(self) -> int:
        return self._total_trips

    @property
    def rating(self) -> float:
        return self._rating

    @property
    def certifications(self) -> List[str]:
        return list(self._certifications)

    @property
    def performance_notes(self) -> Optional[str]:
        return self._performance_notes

    @property
    def authorized_vehicle_types(self) -> List[VehicleType]:
        allowed = LICENSE_VEHICLE_TYPES.get(self._license_type, {VehicleType.CAR})
        return [vehicle_type for vehicle_type in VehicleType if vehicle_type in allowed]

    def is_license_expired(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._license_expiry < today

    def needs_license_renewal(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._license_expiry <= _add_months(today, 3)

    def can_drive(self, vehicle_type: VehicleType, today: Optional[date] = None) -> bool:
        return (self._is_active and not self.is_license_expired(today)
                and vehicle_type in self.authorized_vehicle_types
                and self._status == DriverStatus.AVAILABLE)

    def assign_vehicle(self, vehicle_id: str, vehicle_type: VehicleType) -> None:
        if not self.can_drive(vehicle_type):
            raise InvalidStateError(f"Driver {self.id} cannot drive vehicle type {vehicle_type.value}")
        self._assigned_vehicle_id = vehicle_id
        self._status = DriverStatus.ON_DUTY
        self.touch()

    def unassign_vehicle(self) -> None:
        self._assigned_vehicle_id = None
        self._status = DriverStatus.AVAILABLE
        self.touch()

    def assign_route(self, route_id: Optional[str]) -> None:
        self._assigned_route_id = route_id
        self.touch()

    def start_trip(self) -> None:
        if self._assigned_vehicle_id is None:
            raise InvalidStateError("No vehicle assigned to driver")
        self._status = DriverStatus.ON_DUTY
        self.touch()

    def end_trip(self) -> None:
        self._total_trips += 1
        self._status = DriverStatus.ON_DUTY if self._assigned_vehicle_id else DriverStatus.AVAILABLE
        self.touch()

    def update_rating(self, new_rating: float) -> float:
        if new_rating < 1.0 or new_rating > 5.0:
            raise ValidationError("Rating must be between 1 and 5")
        self._rating = self._rating * 0.7 + new_rating * 0.3
        self.touch()
        return self._rating

    def add_certification(self, certification: str) -> None:
        if certification not in self._certifications:
            self._certifications.append(certification)
            self.touch()

    def remove_certification(self, certification: str) -> None:
        if certification in self._certifications:
            self._certifications.remove(certification)
            self.touch()

    def add_performance_note(self, note: str) -> None:
        stamp = datetime.now().strftime("%Y-%m-%d")
        entry = f"[{stamp}] {note}"
        self._performance_notes = f"{self._performance_notes}\n{entry}" if self._performance_notes else entry
        self.touch()

    def set_on_leave(self) -> None:
        self._status = DriverStatus.ON_LEAVE
        self._assigned_vehicle_id = None
        self._assigned_route_id = None
        self.touch()

    def return_from_leave(self) -> None:
        if self._status != DriverStatus.ON_LEAVE:
            raise InvalidStateError(f"Driver {self.id} is not on leave")
        self._status = DriverStatus.AVAILABLE
        self.touch()

    def set_off_duty(self) -> None:
        self._status = DriverStatus.OFF_DUTY
        self.touch()

    def renew_license(self, new_expiry: date) -> None:
        if new_expiry <= self._license_expiry:
            raise ValidationError("New expiry must be later than the current one")
        self._license_expiry = new_expiry
        self.touch()

    def deactivate(self) -> None:
        self._is_active = False
        self.touch()

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "name": self._name,
            "license_number": self._license_number,
            "license_type": self._license_type,
            "license_expiry": to_iso(self._license_expiry),
            "experience_years": self._experience_years,
            "phone": self._phone,
            "email": self._email,
            "status": self._status.value,
            "is_active": self._is_active,
            "assigned_vehicle_id": self._assigned_vehicle_id,
            "assigned_route_id": self._assigned_route_id,
            "total_trips": self._total_trips,
            "rating": self._rating,
            "certifications": list(self._certifications),
            "performance_notes": self._performance_notes,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Driver":
        driver = cls(data["id"], data["name"], data["license_number"], data["license_type"],
                     parse_date(data["license_expiry"]), data.get("experience_years", 0))
        driver._phone = data.get("phone")
        driver._email = data.get("email")
        driver._status = DriverStatus(data["status"])
        driver._is_active = data.get("is_active", True)
        driver._assigned_vehicle_id = data.get("assigned_vehicle_id")
        driver._assigned_route_id = data.get("assigned_route_id")
        driver._total_trips = data.get("total_trips", 0)
        driver._rating = data.get("rating", 5.0)
        driver._certifications = list(data.get("certifications", []))
        driver._performance_notes = data.get("performance_notes")
        driver._restore_base(data)
        return driver


_WEEKEND = {"SATURDAY", "SUNDAY"}


class Route(AbstractEntity):
    """A bus route: an ordered list of stops with a daily service window."""

    def __init__(self, route_id: str, name: str, start_point: str, end_point: str):
        super().__init__(route_id)
        if not start_point or not end_point:
            raise ValidationError("Route start and end points are required")
        self._name = name
        self._start_point = start_point
        self._end_point = end_point
        self._stops: List[str] = [start_point]
        if start_point != end_point:
            self._stops.append(end_point)
        self._route_type = RouteType.LINEAR
        self._is_active = True
        self._assigned_vehicles: List[str] = []
        self._fare = 5.0
        self._operating_days = "MON-FRI"
        self._first_service = time(6, 0)
        self._last_service = time(22, 0)
        self._frequency = 30
        self._description: Optional[str] = None
        self._recalculate()

    def _recalculate(self) -> None:
        self._estimated_duration = len(self._stops) * 5 + 30
        self._total_distance = max(len(self._stops) * 2.0, 5.0)

    @property
    def name(self) -> str:
        return self._name

    @property
    def start_point(self) -> str:
        return self._start_point

    @property
    def end_point(self) -> str:
        return self._end_point

    @property
    def stops(self) -> List[str]:
        return list(self._stops)

    @property
    def route_type(self) -> RouteType:
        return self._route_type

    @route_type.setter
    def route_type(self, value: RouteType) -> None:
        self._route_type = value
        self.touch()

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def status(self) -> str:
        return "active" if self._is_active else "inactive"

    def set_active(self, active: bool) -> None:
        self._is_active = active
        self.touch()

    @property
    def estimated_duration(self) -> int:
        """Minutes for one run from first to last stop."""
        return self._estimated_duration

    @property
    def total_distance(self) -> float:
        return self._total_distance

    @property
    def assigned_vehicles(self) -> List[str]:
        return list(self._assigned_vehicles)

    @property
    def fare(self) -> float:
        return self._fare

    @fare.setter
    def fare(self, value: float) -> None:
        if value < 0:
            raise ValidationError("Fare cannot be negative")
        self._fare = value
        self.touch()

    @property
    def operating_days(self) -> str:
        return self._operating_days

    @operating_days.setter
    def operating_days(self, value: str) -> None:
        self._operating_days = value.upper()
        self.touch()

    @property
    def first_service(self) -> time:
        return self._first_service

    @property
    def last_service(self) -> time:
        return self._last_service

    @property
    def frequency(self) -> int:
        return self._frequency

    @property
    def description(self) -> Optional[str]:
        return self._description

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self._description = value
        self.touch()

    def set_service_window(self, first_service: time, last_service: time, frequency: int) -> None:
        if frequency <= 0:
            raise ValidationError("Frequency must be positive")
        if first_service > last_service:
            raise ValidationError("First service must not be after last service")
        self._first_service = first_service
        self._last_service = last_service
        self._frequency = frequency
        self.touch()

    def add_stop(self, stop: str) -> bool:
        """Insert a stop before the end point. Returns False for a duplicate.

        Circular routes list their terminus once, so stops are appended.
        """
        if stop in self._stops:
            return False
        if self._start_point == self._end_point:
            self._stops.append(stop)
        else:
            self._stops.insert(len(self._stops) - 1, stop)
        self._recalculate()
        self.touch()
        return True

    def add_stop_at(self, index: int, stop: str) -> bool:
        if stop in self._stops:
            return False
        if index <= 0 or index >= len(self._stops):
            raise ValidationError("Stops can only be inserted between the start and end points")
        self._stops.insert(index, stop)
        self._recalculate()
        self.touch()
        return True

    def remove_stop(self, stop: str) -> bool:
        if stop in (self._start_point, self._end_point) or stop not in self._stops:
            return False
        self._stops.remove(stop)
        self._recalculate()
        self.touch()
        return True

    def add_vehicle(self, vehicle_id: str) -> bool:
        if vehicle_id in self._assigned_vehicles:
            return False
        self._assigned_vehicles.append(vehicle_id)
        self.touch()
        return True

    def remove_vehicle(self, vehicle_id: str) -> bool:
        if vehicle_id not in self._assigned_vehicles:
            return False
        self._assigned_vehicles.remove(vehicle_id)
        self.touch()
        return True

    def service_times(self) -> List[time]:
        """Departure times from the first stop, first to last service inclusive."""
        times = []
        current = datetime.combine(date.min, self._first_service)
        last = datetime.combine(date.min, self._last_service)
        while current <= last:
            times.append(current.time())
            current += timedelta(minutes=self._frequency)
        return times

    def next_service_time(self, now: time) -> Optional[time]:
        return next((t for t in self.service_times() if t > now), None)

    def stop_timings(self, departure: Optional[time] = None) -> Dict[str, time]:
        """Arrival time at each stop for a run leaving at ``departure``."""
        departure = departure or self._first_service
        step = self._estimated_duration // len(self._stops)
        start = datetime.combine(date.min, departure)
        return {stop: (start + timedelta(minutes=step * index)).time()
                for index, stop in enumerate(self._stops)}

    def is_operating_on(self, day_of_week: str) -> bool:
        day = day_of_week.upper()
        if self._operating_days == "DAILY":
            return True
        if self._operating_days == "MON-FRI":
            return day not in _WEEKEND
        if self._operating_days == "WEEKENDS":
            return day in _WEEKEND
        return day in self._operating_days

    def is_operating_today(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.is_operating_on(today.strftime("%A"))

    def calculate_fare(self, from_stop: str, to_stop: str) -> float:
        if from_stop not in self._stops or to_stop not in self._stops:
            return self._fare
        hops = abs(self._stops.index(to_stop) - self._stops.index(from_stop))
        return max(self._fare * 0.5, self._fare * hops / len(self._stops))

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "name": self._name,
            "start_point": self._start_point,
            "end_point": self._end_point,
            "stops": list(self._stops),
            "route_type": self._route_type.value,
            "is_active": self._is_active,
            "status": self.status,
            "estimated_duration": self._estimated_duration,
            "total_distance": self._total_distance,
            "assigned_vehicles": list(self._assigned_vehicles),
            "fare": self._fare,
            "operating_days": self._operating_days,
            "first_service": to_iso(self._first_service),
            "last_service": to_iso(self._last_service),
            "frequency": self._frequency,
            "description": self._description,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Route":
        route = cls(data["id"], data["name"], data["start_point"], data["end_point"])
        route._stops = list(data.get("stops", route._stops))
        route._route_type = RouteType(data.get("route_type", RouteType.LINEAR.value))
        route._is_active = data.get("is_active", True)
        route._assigned_vehicles = list(data.get("assigned_vehicles", []))
        route._fare = data.get("fare", 5.0)
        route._operating_days = data.get("operating_days", "MON-FRI")
        route._first_service = parse_time(data.get("first_service")) or route._first_service
        route._last_service = parse_time(data.get("last_service")) or route._last_service
        route._frequency = data.get("frequency", 30)
        route._description = data.get("description")
        route._recalculate()
        route._restore_base(data)
        return route


class MaintenanceRecord(AbstractEntity):
    """A service job booked against a vehicle."""

    def __init__(self, record_id: str, vehicle_id: str, maintenance_type: str, description: str,
                 scheduled_date: Optional[date] = None,
                 priority: MaintenancePriority = MaintenancePriority.MEDIUM):
        super().__init__(record_id)
        self._vehicle_id = vehicle_id
        self._maintenance_type = maintenance_type
        self._description = description
        self._scheduled_date = scheduled_date or date.today()
        self._priority = priority
        self._status = MaintenanceStatus.SCHEDULED
        self._start_date: Optional[date] = None
        self._completion_date: Optional[date] = None
        self._performed_by: Optional[str] = None
        self._cost = 0.0
        self._parts_replaced: Optional[str] = None
        self._notes: Optional[str] = None

    @property
    def vehicle_id(self) -> str:
        return self._vehicle_id

    @property
    def maintenance_type(self) -> str:
        return self._maintenance_type

    @property
    def description(self) -> str:
        return self._description

    @property
    def scheduled_date(self) -> date:
        return self._scheduled_date

    @property
    def priority(self) -> MaintenancePriority:
        return self._priority

    @property
    def status(self) -> MaintenanceStatus:
        return self._status

    @property
    def start_date(self) -> Optional[date]:
        return self._start_date

    @property
    def completion_date(self) -> Optional[date]:
        return self._completion_date

    @property
    def performed_by(self) -> Optional[str]:
        return self._performed_by

    @property
    def cost(self) -> float:
        return self._cost

    @property
    def parts_replaced(self) -> Optional[str]:
        return self._parts_replaced

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    def add_note(self, note: str) -> None:
        self._notes = f"{self._notes}; {note}" if self._notes else note
        self.touch()

    def start(self, performed_by: str, on: Optional[date] = None) -> None:
        if self._status != MaintenanceStatus.SCHEDULED:
            raise InvalidStateError("Only scheduled maintenance can be started")
        self._status = MaintenanceStatus.IN_PROGRESS
        self._performed_by = performed_by
        self._start_date = on or date.today()
        self.touch()

    def complete(self, cost: float, parts_replaced: Optional[str] = None, on: Optional[date] = None) -> None:
        if self._status != MaintenanceStatus.IN_PROGRESS:
            raise InvalidStateError("Only in-progress maintenance can be completed")
        if cost < 0:
            raise ValidationError("Maintenance cost cannot be negative")
        self._status = MaintenanceStatus.COMPLETED
        self._cost = cost
        self._parts_replaced = parts_replaced
        self._completion_date = on or date.today()
        self.touch()

    def cancel(self, reason: str) -> None:
        if self._status == MaintenanceStatus.COMPLETED:
            raise InvalidStateError("Cannot cancel completed maintenance")
        self._status = MaintenanceStatus.CANCELLED
        self.add_note(f"Cancelled: {reason}")

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._status == MaintenanceStatus.SCHEDULED and self._scheduled_date < today

    @property
    def duration_days(self) -> int:
        if self._start_date is None or self._completion_date is None:
            return 0
        return (self._completion_date - self._start_date).days

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "vehicle_id": self._vehicle_id,
            "maintenance_type": self._maintenance_type,
            "description": self._description,
            "scheduled_date": to_iso(self._scheduled_date),
            "priority": self._priority.value,
            "status": self._status.value,
            "start_date": to_iso(self._start_date),
            "completion_date": to_iso(self._completion_date),
            "performed_by": self._performed_by,
            "cost": self._cost,
            "parts_replaced": self._parts_replaced,
            "notes": self._notes,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MaintenanceRecord":
        record = cls(data["id"], data["vehicle_id"], data["maintenance_type"], data["description"],
                     parse_date(data.get("scheduled_date")), MaintenancePriority(data.get("priority", "medium")))
        record._status = MaintenanceStatus(data["status"])
        record._start_date = parse_date(data.get("start_date"))
        record._completion_date = parse_date(data.get("completion_date"))
        record._performed_by = data.get("performed_by")
        record._cost = data.get("cost", 0.0)
        record._parts_replaced = data.get("parts_replaced")
        record._notes = data.get("notes")
        record._restore_base(data)
        return record
