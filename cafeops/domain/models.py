from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, Numeric
from sqlalchemy.sql import func
from cafeops.infrastructure.database import Base

class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, index=True)
    role = Column(String, nullable=False)  # CHEF, WAITER, ADMIN
    status = Column(String, default="INVITED")  # INVITED, ACTIVE, INACTIVE


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String, default="PENDING", nullable=False)

    # Line items never change after creation, so a JSON column is enough:
    # [{"menuItemId": 3, "name": "Latte", "quantity": 2, "unitPrice": "4.50"}]
    items = Column(JSON, nullable=False)

    # Computed once at creation; never recomputed from items
    total = Column(Numeric(10, 2), nullable=False)

    # Assignment slots. NULL means the order is still in the shared pool.
    kitchen_worker_id = Column(Integer, ForeignKey("staff.id"), nullable=True, index=True)
    service_worker_id = Column(Integer, ForeignKey("staff.id"), nullable=True, index=True)

    payment_method = Column(String, default="COD")
    payment_status = Column(String, default="PENDING")
    table_number = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    accepted_at = Column(DateTime(timezone=True), nullable=True)  # service claim time
    served_at = Column(DateTime(timezone=True), nullable=True)
