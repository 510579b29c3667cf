# accounts/session_state.py

"""
Typed per-session UI state (current screen, selected role, selected child).

Loaded from and saved to the Django session explicitly at request
boundaries; nothing is kept in module globals.
"""

from dataclasses import dataclass, asdict, fields

from django.core.exceptions import ValidationError

SESSION_KEY = 'schooldesk_state'

VIEWS = (
    'dashboard',
    'students',
    'educators',
    'attendance',
    'fees',
    'exams',
    'subjects',
    'announcements',
    'admissions',
    'id-cards',
    'certificates',
    'reports',
    'settings',
)


@dataclass
class SessionState:
    current_view: str = 'dashboard'
    selected_role: str = ''
    selected_child_id: str = ''

    @classmethod
    def load(cls, request):
        stored = request.session.get(SESSION_KEY) or {}
        known = {f.name for f in fields(cls)}
        state = cls(**{key: value for key, value in stored.items() if key in known})
        if state.current_view not in VIEWS:
            state.current_view = 'dashboard'
        return state

    def save(self, request):
        request.session[SESSION_KEY] = asdict(self)

    def update(self, **changes):
        """Apply client-supplied changes; unknown keys and views are rejected."""
        known = {f.name for f in fields(self)} - {'selected_role'}
        for key, value in changes.items():
            if key not in known:
                raise ValidationError(f"Unknown session field: {key}")
            if key == 'current_view' and value not in VIEWS:
                raise ValidationError(f"Unknown view: {value}")
            setattr(self, key, '' if value is None else str(value))
        return self

    @staticmethod
    def clear(request):
        request.session.pop(SESSION_KEY, None)
