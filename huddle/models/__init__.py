# Import all models here to ensure they are registered with Base before
# Base.metadata.create_all runs in huddle.main.create_app.
from .user import User, Role, OrganizerRequestStatus
from .team import Team, team_members
from .invite import Invite, InviteStatus
from .notification import Notification, NotificationType
from .event import Event, EventEdit, EventStatus, event_participants
from .otp import OTP, OTPPurpose
from .payment import Payment, PaymentMethod, PaymentStatus
from .outbox import OutboxMessage, Channel, DeliveryStatus
