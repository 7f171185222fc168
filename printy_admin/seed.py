"""Sample orders, tickets and services for an empty admin database."""

import logging

from sqlalchemy.orm import Session

from .models import AdminOrder, AdminService, AdminTicket

logger = logging.getLogger(__name__)

SAMPLE_ORDERS = [
    dict(id="ORD-12353", customer="Gabriel Santos", status="Processing", priority="Urgent",
         total="₱15,000", date="May 2, 2025"),
    dict(id="ORD-12352", customer="Carla Reyes", status="Needs Quote", total="TBD",
         date="May 2, 2025"),
    dict(id="ORD-12351", customer="Miguel Tan", status="Awaiting Quote Approval",
         total="₱5,000", date="May 1, 2025"),
    dict(id="ORD-12350", customer="Sophia Cruz", status="Verifying Payment", total="₱1,200",
         date="May 30, 2025", proof_of_payment_url="/test_payment_2.jpg",
         proof_uploaded_at="September 20, 2025 11:30 AM"),
    dict(id="ORD-12349", customer="Mark Dela Cruz", status="Verifying Payment", total="₱7,400",
         date="Apr 28, 2025", proof_of_payment_url="/test_payment.jpg",
         proof_uploaded_at="September 19, 2025 10:30 AM"),
    dict(id="ORD-12348", customer="John Doe", status="Processing", total="₱6,400",
         date="Apr 29, 2025"),
    dict(id="ORD-12347", customer="Jane Smith", status="Awaiting Payment", total="₱10,400",
         date="Apr 30, 2025"),
    dict(id="ORD-12346", customer="Ethan Lim", status="For Delivery/Pick-up", total="₱7,400",
         date="July 28, 2025"),
    dict(id="ORD-12345", customer="Joulet Casquejo", status="Awaiting Payment", total="₱7,400",
         date="June 28, 2025"),
    dict(id="ORD-12344", customer="Rafael Tan", status="Completed", total="₱5,500",
         date="March 28, 2025"),
    dict(id="ORD-12343", customer="Joanne Joaquin", status="Cancelled", total="₱7,400",
         date="January 30, 2025"),
]

SAMPLE_TICKETS = [
    dict(id="TCK-3055", subject="Printing color mismatch on recent batch", status="Open",
         date="May 30", requester="Jorrel De Ocampo",
         description="Colors look dull on batch #8421 compared to proof. "
                     "Please review and advise next steps."),
    dict(id="TCK-3052", subject="Delivery schedule inquiry", status="Open", date="May 25",
         requester="Andrea Salazar"),
    dict(id="TCK-2981", subject="Invoice correction", status="Pending", date="May 14",
         requester="Ian De Jesus"),
    dict(id="TCK-2970", subject="Reprint request", status="Closed", date="May 10",
         requester="Liam Vitug"),
]

# (code, name, status, category)
SAMPLE_SERVICES = [
    ("SRV-CP001", "Official Receipt", "Active", "BIR Registered Forms"),
    ("SRV-CP002", "Sales Invoice", "Active", "BIR Registered Forms"),
    ("SRV-CP003", "Purchase Order", "Inactive", "BIR Registered Forms"),
    ("SRV-CP004", "Delivery Receipt", "Retired", "BIR Registered Forms"),
    ("SRV-CP005", "Insurance Form", "Active", "Commercial Forms"),
    ("SRV-CP006", "Application Form", "Active", "Commercial Forms"),
    ("SRV-CP007", "Registration Form", "Inactive", "Commercial Forms"),
    ("SRV-CP011", "Company Folder", "Inactive", "Business Forms"),
    ("SRV-CP012", "Business Card", "Active", "Business Forms"),
    ("SRV-CP013", "Letterhead", "Active", "Business Forms"),
    ("SRV-CP014", "Envelope", "Retired", "Business Forms"),
    ("SRV-CO001", "Brochures", "Active", "Commercial Printing"),
    ("SRV-CO002", "Flyers", "Active", "Commercial Printing"),
    ("SRV-CO003", "Posters", "Inactive", "Commercial Printing"),
    ("SRV-CO004", "Banners", "Active", "Commercial Printing"),
    ("SRV-PK001", "Soap Box", "Active", "Packaging"),
    ("SRV-PK002", "Coffee / Tea Box", "Active", "Packaging"),
    ("SRV-PK003", "Pharmaceutical Box", "Active", "Packaging"),
    ("SRV-PK004", "Paper Bag", "Inactive", "Packaging"),
    ("SRV-PK005", "Hang Tag", "Retired", "Packaging"),
    ("SRV-DP001", "Photo Prints", "Active", "Digital Printing"),
    ("SRV-DP002", "Canvas Prints", "Retired", "Digital Printing"),
    ("SRV-DP003", "Stickers", "Active", "Digital Printing"),
    ("SRV-DP004", "Labels", "Active", "Digital Printing"),
    ("SRV-LF001", "Signage", "Active", "Large Format Printing"),
    ("SRV-LF002", "Vehicle Wraps", "Inactive", "Large Format Printing"),
    ("SRV-LF003", "Window Graphics", "Active", "Large Format Printing"),
]


def seed_records(db: Session) -> int:
    """
    Insert the sample records into empty tables.

    Tables that already hold rows are left alone. Returns the number of rows
    inserted.
    """
    inserted = 0

    if db.query(AdminOrder).count() == 0:
        db.add_all(AdminOrder(sort_order=i, **row) for i, row in enumerate(SAMPLE_ORDERS))
        inserted += len(SAMPLE_ORDERS)

    if db.query(AdminTicket).count() == 0:
        db.add_all(AdminTicket(sort_order=i, **row) for i, row in enumerate(SAMPLE_TICKETS))
        inserted += len(SAMPLE_TICKETS)

    if db.query(AdminService).count() == 0:
        db.add_all(
            AdminService(id=code, code=code, name=name, status=status, category=category, sort_order=i)
            for i, (code, name, status, category) in enumerate(SAMPLE_SERVICES)
        )
        inserted += len(SAMPLE_SERVICES)

    db.commit()
    if inserted:
        logger.info("Seeded %d sample records", inserted)
    return inserted


if __name__ == "__main__":
    from .db import SessionLocal, init_db
    from .logging_config import setup_logging

    setup_logging()
    init_db()
    with SessionLocal() as session:
        seed_records(session)
