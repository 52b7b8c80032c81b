from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import AdminSession
from .ip_rate_limit import IpRateLimit
from .staff import Staff
from .service import Service
from .timeslot import Timeslot
from .booking import Booking
