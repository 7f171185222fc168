from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AdminOrder(Base):
    __tablename__ = "admin_orders"

    id = Column(String, primary_key=True)  # e.g., ORD-12353
    customer = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    total = Column(String, nullable=False, default="TBD")  # display string, e.g. "₱15,000"
    date = Column(String, nullable=False, default="")
    priority = Column(String, nullable=True)
    proof_of_payment_url = Column(String, nullable=True)
    proof_uploaded_at = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AdminTicket(Base):
    __tablename__ = "admin_tickets"

    id = Column(String, primary_key=True)  # e.g., TCK-3055
    subject = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    date = Column(String, nullable=False, default="")
    description = Column(Text, nullable=True)
    last_message = Column(Text, nullable=True)
    requester = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AdminService(Base):
    __tablename__ = "admin_services"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=False, unique=True, index=True)
    status = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
