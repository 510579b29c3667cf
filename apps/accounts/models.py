# accounts/models.py

from django.contrib.auth.models import User
from django.db import models
import logging

from utils.models import TimeStampedModel

logger = logging.getLogger(__name__)


# =============================================================================
# SCHOOL MODEL (TENANT)
# =============================================================================

class School(TimeStampedModel):
    """A tenant. Every school-owned row references one of these."""

    STATUS_PENDING = 'pending'
    STATUS_ACTIVE = 'active'
    STATUS_SUSPENDED = 'suspended'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_SUSPENDED, 'Suspended'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    BOARD_CHOICES = [
        ('CBSE', 'CBSE'),
        ('ICSE', 'ICSE'),
        ('STATE', 'State Board'),
        ('IB', 'International Baccalaureate'),
        ('OTHER', 'Other'),
    ]

    # -------------------------------------------------------------------------
    # BASIC INFORMATION
    # -------------------------------------------------------------------------

    name = models.CharField("School Name", max_length=191, unique=True)
    board = models.CharField("Board", max_length=20, choices=BOARD_CHOICES, default='CBSE')
    logo = models.ImageField("Logo", upload_to='schools/logos/', blank=True, null=True)

    # -------------------------------------------------------------------------
    # ADDRESS
    # -------------------------------------------------------------------------

    address = models.TextField("Address", blank=True)
    city = models.CharField("City", max_length=100, blank=True)
    state = models.CharField("State", max_length=100, blank=True)
    pincode = models.CharField("PIN Code", max_length=10, blank=True)

    # -------------------------------------------------------------------------
    # CONTACT
    # -------------------------------------------------------------------------

    contact_person = models.CharField("Contact Person", max_length=150, blank=True)
    contact_phone = models.CharField("Contact Phone", max_length=20, blank=True)
    contact_email = models.EmailField("Contact Email", blank=True)

    # -------------------------------------------------------------------------
    # STATUS
    # -------------------------------------------------------------------------

    status = models.CharField(
        "Status",
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
        db_index=True,
    )
    onboarded_at = models.DateTimeField("Onboarded At", blank=True, null=True)

    objects = models.Manager()

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE


# =============================================================================
# USER PROFILE
# =============================================================================

class UserProfile(TimeStampedModel):
    """Role and tenant of a Django user."""

    ROLE_SUPERADMIN = 'SUPERADMIN'
    ROLE_ADMIN = 'ADMIN'
    ROLE_EDUCATOR = 'EDUCATOR'
    ROLE_LEARNER = 'LEARNER'
    ROLE_PARENT = 'PARENT'
    ROLE_COUNSELOR = 'COUNSELOR'

    USER_ROLES = [
        (ROLE_SUPERADMIN, 'Super Administrator'),
        (ROLE_ADMIN, 'School Administrator'),
        (ROLE_EDUCATOR, 'Educator'),
        (ROLE_LEARNER, 'Learner'),
        (ROLE_PARENT, 'Parent'),
        (ROLE_COUNSELOR, 'Admissions Counselor'),
    ]

    # -------------------------------------------------------------------------
    # CORE RELATIONSHIPS
    # -------------------------------------------------------------------------

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile'
    )
    school = models.ForeignKey(
        School,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='user_profiles'
    )
    role = models.CharField(
        "Role",
        max_length=20,
        choices=USER_ROLES,
        default=ROLE_EDUCATOR
    )

    # -------------------------------------------------------------------------
    # DETAILS
    # -------------------------------------------------------------------------

    full_name = models.CharField("Full Name", max_length=150, blank=True)
    phone = models.CharField("Phone", max_length=20, blank=True)
    is_active = models.BooleanField("Active", default=True)
    metadata = models.JSONField("Metadata", default=dict, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['school', 'role']),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.get_role_display()}"
