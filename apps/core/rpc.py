# core/rpc.py

"""
Named remote procedures.

Procedures register with @rpc_procedure and are invoked through
call_procedure(name, params, auth), which checks the caller, resolves the
school the call acts on and runs the procedure scoped to it. Parameters
keep their p_* names (p_school_id, p_name, ...).
"""

from dataclasses import dataclass
import logging

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError

from accounts.auth import ROLE_ADMIN
from schooldesk.managers import SchoolContext

logger = logging.getLogger(__name__)

_registry = {}


class UnknownProcedure(ObjectDoesNotExist):
    pass


@dataclass(frozen=True)
class Procedure:
    name: str
    func: object
    privileged: bool = False
    public: bool = False


def rpc_procedure(name, privileged=False, public=False):
    """
    privileged: only the service role, SUPERADMIN or ADMIN may call it.
    public: callable without a signed-in user when a valid API key is sent.
    """
    def decorator(func):
        if name in _registry:
            raise ValueError(f"Procedure {name} is already registered")
        _registry[name] = Procedure(name=name, func=func, privileged=privileged, public=public)
        return func
    return decorator


def registered_procedures():
    return sorted(_registry)


def resolve_school_id(params, auth):
    """
    The school a call acts on: p_school_id, else the caller's own school.
    Callers tied to a school cannot name another one.
    """
    requested = params.get('p_school_id')
    if requested and auth.school_id and str(requested) != str(auth.school_id) and not auth.is_privileged:
        raise PermissionDenied("Cannot act on another school.")
    school_id = requested or auth.school_id
    return str(school_id) if school_id else None


def call_procedure(name, params, auth, key_verified=False):
    """
    Run a registered procedure.

    Raises:
        UnknownProcedure: no procedure with that name
        PermissionDenied: caller may not run it
        ValidationError: bad parameters (raised by the procedure)
    """
    procedure = _registry.get(name)
    if procedure is None:
        raise UnknownProcedure(f"Unknown procedure: {name}")

    params = params or {}
    if not isinstance(params, dict):
        raise ValidationError("Parameters must be a JSON object.")

    if not auth.is_authenticated and not (procedure.public and key_verified):
        raise PermissionDenied("Authentication required.")
    if procedure.privileged and not (auth.is_privileged or auth.has_role(ROLE_ADMIN)):
        raise PermissionDenied(f"{name} requires the service role or an administrator.")

    school_id = resolve_school_id(params, auth)
    with SchoolContext(school_id):
        result = procedure.func(params, auth.with_school(school_id))

    logger.info(f"RPC {name} called by {auth.user_id or 'anonymous'} (school {school_id})")
    return result
