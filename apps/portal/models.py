# portal/models.py

from django.db import models

from utils.models import BaseModel


# =============================================================================
# SERVICE TICKETS
# =============================================================================

class ServiceTicket(BaseModel):
    """A request raised by a parent about one of their children."""

    STATUS_OPEN = 'open'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_RESOLVED = 'resolved'
    STATUS_CLOSED = 'closed'

    STATUS_CHOICES = [
        (STATUS_OPEN, 'Open'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_RESOLVED, 'Resolved'),
        (STATUS_CLOSED, 'Closed'),
    ]

    CATEGORY_CHOICES = [
        ('academic', 'Academic'),
        ('transport', 'Transport'),
        ('fee', 'Fee'),
        ('technical', 'Technical'),
        ('general', 'General'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    parent = models.ForeignKey('students.Parent', on_delete=models.CASCADE, related_name='service_tickets')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='service_tickets')
    category = models.CharField("Category", max_length=10, choices=CATEGORY_CHOICES, default='general')
    priority = models.CharField("Priority", max_length=10, choices=PRIORITY_CHOICES, default='medium')
    subject = models.CharField("Subject", max_length=200)
    description = models.TextField("Description")
    status = models.CharField("Status", max_length=12, choices=STATUS_CHOICES, default=STATUS_OPEN, db_index=True)
    resolved_at = models.DateTimeField("Resolved At", null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.subject} ({self.get_status_display()})"

    @property
    def is_closed(self):
        return self.status == self.STATUS_CLOSED


class TicketReply(BaseModel):

    ticket = models.ForeignKey(ServiceTicket, on_delete=models.CASCADE, related_name='replies')
    sender_id = models.CharField(max_length=64)
    sender_role = models.CharField(max_length=20)
    message = models.TextField("Message")

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.sender_role} on {self.ticket_id}"
