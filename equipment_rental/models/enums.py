from enum import Enum


class RentalContractStatus(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    FINISHED = "Finished"
    CANCELLED = "Cancelled"


class EquipmentStatus(str, Enum):
    AVAILABLE = "Available"
    RENTED = "Rented"
    SOLD = "Sold"
    UNDER_MAINTENANCE = "UnderMaintenance"


class EquipmentBrand(str, Enum):
    UNKNOWN = "Unknown"
    CATERPILLAR = "Caterpillar"
    KOMATSU = "Komatsu"
    VOLVO = "Volvo"
    HITACHI = "Hitachi"
    LIEBHERR = "Liebherr"
    JOHN_DEERE = "JohnDeere"
    DOOSAN = "Doosan"
    JCB = "JCB"
    SANY = "Sany"
    CASE_CONSTRUCTION = "CaseConstruction"
    KUBOTA = "Kubota"
    HYUNDAI = "Hyundai"


class EquipmentType(str, Enum):
    UNKNOWN = "Unknown"
    EXCAVATOR = "Excavator"
    BULLDOZER = "Bulldozer"
    LOADER = "Loader"
    GRADER = "Grader"
    DUMP_TRUCK = "DumpTruck"
    CRANE = "Crane"
    FORKLIFT = "Forklift"
    BACKHOE = "Backhoe"
    COMPACTOR = "Compactor"
    SKID_STEER_LOADER = "SkidSteerLoader"
    PAVER = "Paver"
    TRENCHER = "Trencher"
    TELEHANDLER = "Telehandler"
    SCRAPER = "Scraper"


TERMINAL_RENTAL_STATES = {RentalContractStatus.FINISHED.value, RentalContractStatus.CANCELLED.value}
# Contracts in these states keep their equipment marked Rented.
HOLDING_RENTAL_STATES = {RentalContractStatus.ACTIVE.value, RentalContractStatus.SUSPENDED.value}
EDITABLE_RENTAL_STATES = {
    RentalContractStatus.DRAFT.value,
    RentalContractStatus.ACTIVE.value,
    RentalContractStatus.SUSPENDED.value,
}


class EngineType(str, Enum):
    DIESEL = "Diesel"
    ELECTRIC = "Electric"
    GASOLINE = "Gasoline"
    HYBRID = "Hybrid"


class PowerUnit(str, Enum):
    HORSE_POWER = "HorsePower"
    KW = "KW"


class WeightUnit(str, Enum):
    KILOGRAMS = "Kilograms"
    POUNDS = "Pounds"


class FuelCapacityUnit(str, Enum):
    LITERS = "Liters"
    GALLONS = "Gallons"


class DimensionUnit(str, Enum):
    METERS = "Meters"
    FEET = "Feet"


class SpeedUnit(str, Enum):
    KMH = "Kmh"
    MPH = "Mph"
    MPS = "Mps"
