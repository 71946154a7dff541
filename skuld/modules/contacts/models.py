from skuld.database.database import Base
from sqlalchemy import Column, String, Boolean, Text, Enum
from skuld.common.mixins import BaseMixin
import enum


class ContactType(str, enum.Enum):
    CLIENT = "CLIENT"
    SUPPLIER = "SUPPLIER"
    BOTH = "BOTH"


class Contact(Base, BaseMixin):
    """Customer or supplier. Individuals (second-hand sellers) carry no SIREN."""
    __tablename__ = "contacts"

    type = Column(Enum(ContactType), nullable=False, default=ContactType.CLIENT)
    display_name = Column(String(200), nullable=False, index=True)
    legal_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)

    address_line1 = Column(String(500), nullable=True)
    address_line2 = Column(String(500), nullable=True)
    postal_code = Column(String(10), nullable=True)
    city = Column(String(200), nullable=True)
    country = Column(String(2), nullable=False, default="FR")

    is_individual = Column(Boolean, nullable=False, default=False)
    siren = Column(String(9), nullable=True)
    notes = Column(Text, nullable=True)
