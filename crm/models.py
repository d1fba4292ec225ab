from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Float, Date, JSON, BigInteger
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from crm.database import Base
import enum

# =====================================================
# ENUMS
# =====================================================

class PrincipalType(str, enum.Enum):
    ADMIN = "admin"
    CLIENT = "client"

class ClientStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"

class LeadStatus(str, enum.Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    IN_PROGRESS = "in-progress"
    CONVERTED = "converted"
    LOST = "lost"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"

class ContactStatus(str, enum.Enum):
    NEW = "new"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"

class ProjectStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"

class InvoiceType(str, enum.Enum):
    STANDARD = "standard"
    DEPOSIT = "deposit"

class ContractStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    SIGNED = "signed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"

class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

class RequestStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    REVIEWING = "reviewing"
    QUOTED = "quoted"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DECLINED = "declined"

class RequestType(str, enum.Enum):
    FEATURE = "feature"
    CHANGE = "change"
    BUG_FIX = "bug_fix"
    ENHANCEMENT = "enhancement"
    SUPPORT = "support"

class RequestPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

class RequestUrgency(str, enum.Enum):
    NORMAL = "normal"
    PRIORITY = "priority"
    URGENT = "urgent"
    EMERGENCY = "emergency"

# Statuses that still carry an open balance
OUTSTANDING_INVOICE_STATUSES = {
    InvoiceStatus.SENT.value,
    InvoiceStatus.VIEWED.value,
    InvoiceStatus.PARTIAL.value,
    InvoiceStatus.OVERDUE.value,
}

# =====================================================
# CLIENTS
# =====================================================

class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    contact_name = Column(String(255))
    company_name = Column(String(255))
    phone = Column(String(50))
    password_hash = Column(String(255))  # Null until the invitation is accepted
    invitation_token = Column(String(64), unique=True, index=True)
    invitation_sent_at = Column(DateTime)
    status = Column(String(20), default=ClientStatus.PENDING.value, index=True)
    last_login_at = Column(DateTime)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    projects = relationship("Project", back_populates="client")
    leads = relationship("Lead", back_populates="client")
    threads = relationship("MessageThread", back_populates="client")
    invoices = relationship("Invoice", back_populates="client")

# =====================================================
# LEAD INTAKE
# =====================================================

class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    contact_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50))
    company_name = Column(String(255))
    project_type = Column(String(100))
    budget_range = Column(String(100))
    timeline = Column(String(100))
    description = Column(Text)
    features = Column(JSON)  # List of feature slugs; legacy rows may hold a string
    source = Column(String(100), default="intake_form")
    notes = Column(Text)
    status = Column(String(20), default=LeadStatus.NEW.value, index=True)
    cancelled_by = Column(String(20))
    cancellation_reason = Column(Text)
    client_id = Column(Integer, ForeignKey("clients.id"), index=True)
    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship("Client", back_populates="leads")
    project = relationship("Project", back_populates="lead", uselist=False)

class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    company = Column(String(255))
    subject = Column(String(255))
    message = Column(Text, nullable=False)
    status = Column(String(20), default=ContactStatus.NEW.value, index=True)
    read_at = Column(DateTime)
    replied_at = Column(DateTime)
    client_id = Column(Integer, ForeignKey("clients.id"))
    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

# =====================================================
# PROJECT MANAGEMENT
# =====================================================

class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"))
    project_name = Column(String(255), nullable=False)
    project_type = Column(String(100))
    description = Column(Text)
    status = Column(String(20), default=ProjectStatus.PENDING.value, index=True)
    budget = Column(String(100))
    price = Column(Float)
    deposit = Column(Float)
    timeline = Column(String(100))
    start_date = Column(Date)
    end_date = Column(Date)
    progress = Column(Integer, default=0)
    features = Column(JSON)  # List of feature slugs; legacy rows may hold a string
    preview_url = Column(String(500))
    repo_url = Column(String(500))
    production_url = Column(String(500))
    admin_notes = Column(Text)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship("Client", back_populates="projects")
    lead = relationship("Lead", back_populates="project")
    milestones = relationship("Milestone", back_populates="project", cascade="all, delete-orphan")
    files = relationship("ProjectFile", back_populates="project", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="project")
    contracts = relationship("Contract", back_populates="project")
    threads = relationship("MessageThread", back_populates="project")
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")
    requests = relationship("AdHocRequest", back_populates="project", cascade="all, delete-orphan")

class Milestone(Base):
    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    due_date = Column(Date, index=True)
    deliverables = Column(JSON, default=list)
    is_completed = Column(Boolean, default=False)
    completed_date = Column(DateTime)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="milestones")

class ProjectFile(Base):
    __tablename__ = "project_files"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    original_name = Column(String(255), nullable=False)
    filename = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    mime_type = Column(String(100))
    file_size = Column(BigInteger, nullable=False)
    uploaded_by = Column(String(20), default=PrincipalType.ADMIN.value)
    shared_with_client = Column(Boolean, default=False)
    created_at = Column(DateTime, default=func.now())

    # Relationships
    project = relationship("Project", back_populates="files")

class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    milestone_id = Column(Integer, ForeignKey("milestones.id"))
    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String(20), default=TaskStatus.PENDING.value, index=True)
    priority = Column(String(20), default=TaskPriority.MEDIUM.value)
    due_date = Column(Date, index=True)
    completed_at = Column(DateTime)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="tasks")

class AdHocRequest(Base):
    __tablename__ = "ad_hoc_requests"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    request_type = Column(String(20), nullable=False)
    priority = Column(String(20), default=RequestPriority.NORMAL.value)
    urgency = Column(String(20), default=RequestUrgency.NORMAL.value)
    status = Column(String(20), default=RequestStatus.SUBMITTED.value, index=True)
    quoted_price = Column(Float)
    estimated_hours = Column(Float)
    admin_notes = Column(Text)
    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="requests")
    client = relationship("Client")

# =====================================================
# BILLING
# =====================================================

class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), index=True)
    invoice_type = Column(String(20), default=InvoiceType.STANDARD.value)
    line_items = Column(JSON, default=list)
    amount_total = Column(Float, default=0)
    amount_paid = Column(Float, default=0)
    credit_applied = Column(Float, default=0)
    status = Column(String(20), default=InvoiceStatus.DRAFT.value, index=True)
    issue_date = Column(Date)
    due_date = Column(Date, index=True)
    sent_at = Column(DateTime)
    paid_at = Column(DateTime)
    reminder_count = Column(Integer, default=0)
    last_reminder_at = Column(DateTime)
    notes = Column(Text)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="invoices")
    client = relationship("Client", back_populates="invoices")

class Contract(Base):
    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    parent_contract_id = Column(Integer, ForeignKey("contracts.id"))  # Set on amendments
    content = Column(Text, nullable=False)
    status = Column(String(20), default=ContractStatus.DRAFT.value, index=True)
    sent_at = Column(DateTime)
    signed_at = Column(DateTime)
    expires_at = Column(DateTime)
    reminder_count = Column(Integer, default=0)
    last_reminder_at = Column(DateTime)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="contracts")
    client = relationship("Client")

# =====================================================
# MESSAGING
# =====================================================

class MessageThread(Base):
    __tablename__ = "message_threads"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), index=True)
    subject = Column(String(255), nullable=False)
    thread_type = Column(String(20), default="general")
    status = Column(String(20), default="active")
    last_message_at = Column(DateTime, default=func.now())
    created_at = Column(DateTime, default=func.now())

    # Relationships
    client = relationship("Client", back_populates="threads")
    project = relationship("Project", back_populates="threads")
    messages = relationship("Message", back_populates="thread", cascade="all, delete-orphan", order_by="Message.id")

class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(Integer, ForeignKey("message_threads.id"), nullable=False, index=True)
    sender_type = Column(String(20), nullable=False)
    sender_name = Column(String(255))
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime)
    created_at = Column(DateTime, default=func.now(), index=True)

    # Relationships
    thread = relationship("MessageThread", back_populates="messages")
