import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from equipment_rental.db.base import Base
from equipment_rental.models.enums import HOLDING_RENTAL_STATES, EquipmentStatus, RentalContractStatus
from equipment_rental.services.errors import ContractStateError


class Supplier(Base):
    __tablename__ = "Suppliers"

    SupplierID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    Name = Column(String(100), nullable=False)
    Email = Column(String(255))
    ContactPerson = Column(String(100))
    Country = Column(String(100))
    City = Column(String(100))
    AddedDate = Column(DateTime, default=datetime.now)
    UpdatedDate = Column(DateTime)
    DeletedDate = Column(DateTime)
    RowVersion = Column(Integer, nullable=False)

    PhoneNumbers = relationship("SupplierPhoneNumber", back_populates="Supplier", cascade="all, delete-orphan")
    Equipment = relationship("Equipment", back_populates="Supplier")

    __mapper_args__ = {"version_id_col": RowVersion}

    @property
    def Address(self) -> str:
        return ", ".join(part for part in (self.City, self.Country) if part)


class SupplierPhoneNumber(Base):
    __tablename__ = "SupplierPhoneNumbers"
    __table_args__ = (UniqueConstraint("SupplierID", "Number"),)

    PhoneNumberID = Column(Integer, primary_key=True, autoincrement=True)
    SupplierID = Column(Uuid, ForeignKey("Suppliers.SupplierID"), nullable=False)
    Number = Column(String(30), nullable=False)

    Supplier = relationship("Supplier", back_populates="PhoneNumbers")


class Customer(Base):
    __tablename__ = "Customers"

    CustomerID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    Name = Column(String(100), nullable=False)
    Email = Column(String(255))
    Country = Column(String(100))
    City = Column(String(100))
    AddedDate = Column(DateTime, default=datetime.now)
    UpdatedDate = Column(DateTime)
    DeletedDate = Column(DateTime)
    RowVersion = Column(Integer, nullable=False)

    PhoneNumbers = relationship("CustomerPhoneNumber", back_populates="Customer", cascade="all, delete-orphan")
    RentalContracts = relationship("RentalContract", back_populates="Customer")
    SellingContracts = relationship("SellingContract", back_populates="Customer")

    __mapper_args__ = {"version_id_col": RowVersion}

    @property
    def Address(self) -> str:
        return ", ".join(part for part in (self.City, self.Country) if part)


class CustomerPhoneNumber(Base):
    __tablename__ = "CustomerPhoneNumbers"
    __table_args__ = (UniqueConstraint("CustomerID", "Number"),)

    PhoneNumberID = Column(Integer, primary_key=True, autoincrement=True)
    CustomerID = Column(Uuid, ForeignKey("Customers.CustomerID"), nullable=False)
    Number = Column(String(30), nullable=False)

    Customer = relationship("Customer", back_populates="PhoneNumbers")


class Equipment(Base):
    __tablename__ = "Equipment"

    EquipmentID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    Name = Column(String(100), nullable=False)
    InternalSerial = Column(String(6), nullable=False, unique=True)
    Brand = Column(String(30), nullable=False, default="Unknown")
    EquipmentType = Column(String(30), nullable=False, default="Unknown")
    Description = Column(String(1000))
    SupplierID = Column(Uuid, ForeignKey("Suppliers.SupplierID"))
    Price = Column(Numeric(18, 2), nullable=False, default=0)
    Expenses = Column(Numeric(18, 2), nullable=False, default=0)
    ShippingPrice = Column(Numeric(18, 2), nullable=False, default=0)
    ManufactureYear = Column(Integer)
    PurchaseDate = Column(Date)
    Status = Column(String(20), nullable=False, default=EquipmentStatus.AVAILABLE.value)
    AddedDate = Column(DateTime, default=datetime.now)
    UpdatedDate = Column(DateTime)
    DeletedDate = Column(DateTime)
    RowVersion = Column(Integer, nullable=False)

    Supplier = relationship("Supplier", back_populates="Equipment")
    RentalContracts = relationship("RentalContract", back_populates="Equipment")
    SellingContracts = relationship("SellingContract", back_populates="Equipment")
    MaintenanceRecords = relationship("MaintenanceRecord", back_populates="Equipment")
    TechnicalInformation = relationship("TechnicalInformation", back_populates="Equipment", uselist=False)

    __mapper_args__ = {"version_id_col": RowVersion}

    @property
    def TotalPrice(self) -> Decimal:
        return Decimal(self.Price or 0) + Decimal(self.Expenses or 0) + Decimal(self.ShippingPrice or 0)


class RentalContract(Base):
    __tablename__ = "RentalContracts"

    RentalContractID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    EquipmentID = Column(Uuid, ForeignKey("Equipment.EquipmentID"), nullable=False)
    CustomerID = Column(Uuid, ForeignKey("Customers.CustomerID"), nullable=False)
    StartDate = Column(Date, nullable=False)
    EndDate = Column(Date, nullable=False)
    Shifts = Column(Integer, nullable=False)
    ShiftPrice = Column(Numeric(7, 2), nullable=False)
    Status = Column(String(20), nullable=False, default=RentalContractStatus.DRAFT.value)
    SuspendedDate = Column(DateTime)
    FinishedDate = Column(DateTime)
    CancelledDate = Column(DateTime)
    AddedDate = Column(DateTime, default=datetime.now)
    UpdatedDate = Column(DateTime)
    DeletedDate = Column(DateTime)
    RowVersion = Column(Integer, nullable=False)

    Equipment = relationship("Equipment", back_populates="RentalContracts")
    Customer = relationship("Customer", back_populates="RentalContracts")

    __mapper_args__ = {"version_id_col": RowVersion}

    @hybrid_property
    def RentalPrice(self):
        return self.Shifts * self.ShiftPrice

    def activate(self) -> None:
        if self.Status != RentalContractStatus.DRAFT.value:
            raise ContractStateError("Only draft contracts can be activated.")
        self.Status = RentalContractStatus.ACTIVE.value

    def suspend(self) -> None:
        if self.Status != RentalContractStatus.ACTIVE.value:
            raise ContractStateError("Only active contracts can be suspended.")
        self.Status = RentalContractStatus.SUSPENDED.value
        self.SuspendedDate = datetime.now()

    def resume(self) -> None:
        if self.Status != RentalContractStatus.SUSPENDED.value:
            raise ContractStateError("Only suspended contracts can be resumed.")
        self.Status = RentalContractStatus.ACTIVE.value

    def finish(self) -> None:
        if self.Status == RentalContractStatus.FINISHED.value:
            return
        if self.Status not in HOLDING_RENTAL_STATES:
            raise ContractStateError("Only active or suspended contracts can be finished.")
        self.Status = RentalContractStatus.FINISHED.value
        self.FinishedDate = datetime.now()

    def cancel(self) -> None:
        if self.Status == RentalContractStatus.FINISHED.value:
            raise ContractStateError("Finished contracts cannot be cancelled.")
        if self.Status == RentalContractStatus.CANCELLED.value:
            return
        self.Status = RentalContractStatus.CANCELLED.value
        self.CancelledDate = datetime.now()

    def is_active(self) -> bool:
        return self.Status == RentalContractStatus.ACTIVE.value

    def is_finished(self) -> bool:
        return self.Status == RentalContractStatus.FINISHED.value

    def is_cancelled(self) -> bool:
        return self.Status == RentalContractStatus.CANCELLED.value

    def holds_equipment(self) -> bool:
        return self.Status in HOLDING_RENTAL_STATES


class SellingContract(Base):
    __tablename__ = "SellingContracts"

    SellingContractID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    EquipmentID = Column(Uuid, ForeignKey("Equipment.EquipmentID"), nullable=False)
    CustomerID = Column(Uuid, ForeignKey("Customers.CustomerID"), nullable=False)
    SalePrice = Column(Numeric(18, 2), nullable=False)
    SaleDate = Column(Date, nullable=False)
    AddedDate = Column(DateTime, default=datetime.now)
    UpdatedDate = Column(DateTime)
    DeletedDate = Column(DateTime)
    RowVersion = Column(Integer, nullable=False)

    Equipment = relationship("Equipment", back_populates="SellingContracts")
    Customer = relationship("Customer", back_populates="SellingContracts")

    __mapper_args__ = {"version_id_col": RowVersion}


class MaintenanceRecord(Base):
    __tablename__ = "MaintenanceRecords"

    MaintenanceRecordID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    EquipmentID = Column(Uuid, ForeignKey("Equipment.EquipmentID"), nullable=False)
    MaintenanceDate = Column(Date, nullable=False)
    Description = Column(String(1000), nullable=False, default="")
    Cost = Column(Numeric(18, 2), nullable=False, default=0)
    Technician = Column(String(100), nullable=False, default="")
    AddedDate = Column(DateTime, default=datetime.now)
    UpdatedDate = Column(DateTime)
    DeletedDate = Column(DateTime)
    RowVersion = Column(Integer, nullable=False)

    Equipment = relationship("Equipment", back_populates="MaintenanceRecords")

    __mapper_args__ = {"version_id_col": RowVersion}


class TechnicalInformation(Base):
    __tablename__ = "TechnicalInformation"

    TechnicalInformationID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    EquipmentID = Column(Uuid, ForeignKey("Equipment.EquipmentID"), nullable=False, unique=True)
    EngineType = Column(String(20), nullable=False, default="Diesel")
    EnginePower = Column(Integer)
    EnginePowerUnit = Column(String(20), nullable=False, default="HorsePower")
    FuelCapacity = Column(Integer)
    FuelCapacityUnit = Column(String(20), nullable=False, default="Liters")
    Weight = Column(Integer)
    WeightUnit = Column(String(20), nullable=False, default="Kilograms")
    Dimensions = Column(String(50))
    DimensionUnit = Column(String(20), nullable=False, default="Meters")
    MaxSpeed = Column(Integer)
    SpeedUnit = Column(String(20), nullable=False, default="Kmh")
    AddedDate = Column(DateTime, default=datetime.now)
    UpdatedDate = Column(DateTime)

    Equipment = relationship("Equipment", back_populates="TechnicalInformation")


class AuditLog(Base):
    __tablename__ = "AuditLogs"

    AuditID = Column(Integer, primary_key=True, autoincrement=True)
    EntityType = Column(String(50), nullable=False)
    EntityID = Column(String(36), nullable=False)
    Action = Column(String(100), nullable=False)
    Details = Column(String(2000))
    CreatedAt = Column(DateTime, default=datetime.now)
