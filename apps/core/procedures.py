# core/procedures.py

"""
The registered remote procedures. Each takes (params, auth) where auth
already carries the school the call acts on.
"""

from django.conf import settings
from django.core.exceptions import ValidationError

from accounts.auth import link_user_to_demo_school as demo_school
from admissions.services import AdmissionService, generate_next_lead_number as next_lead_number
from academics.services import SubjectService
from fees.services import FeeService
from students.services import StudentService
from utils.utils import serialize_instance

from .rpc import rpc_procedure


def _school_id(auth):
    if not auth.school_id:
        raise ValidationError("No school selected (p_school_id is required).")
    return auth.school_id


def _subject_data(subject):
    data = serialize_instance(subject, exclude=['school'])
    data['school_id'] = str(subject.school_id) if subject.school_id else None
    data['is_global'] = subject.is_global
    return data


# =============================================================================
# ADMISSIONS
# =============================================================================

@rpc_procedure('generate_next_lead_number')
def generate_next_lead_number(params, auth):
    return next_lead_number(_school_id(auth), params.get('p_academic_year'))


@rpc_procedure('create_admission_lead')
def create_admission_lead(params, auth):
    lead = AdmissionService.create_lead(
        _school_id(auth),
        parent_name=params.get('p_parent_name'),
        contact_number=params.get('p_contact_number'),
        lead_source_id=params.get('p_lead_source_id'),
        applying_class_id=params.get('p_applying_class_id'),
        academic_year=params.get('p_academic_year'),
        student_name=params.get('p_student_name') or '',
        priority=params.get('p_priority') or 'medium',
        notes=params.get('p_notes') or '',
        user_id=params.get('p_user_id') or auth.user_id,
        assigned_counselor_id=params.get('p_assigned_counselor_id'),
    )
    return {'id': str(lead.pk), 'lead_number': lead.lead_number}


@rpc_procedure('update_application_status', privileged=True)
def update_application_status(params, auth):
    application = AdmissionService.update_application_status(
        params.get('p_application_id'), params.get('p_status'), user_id=auth.user_id
    )
    return {'id': str(application.pk), 'decision_status': application.decision_status}


# =============================================================================
# FEES
# =============================================================================

@rpc_procedure('backfill_missing_fees_v2', privileged=True)
def backfill_missing_fees_v2(params, auth):
    academic_year = params.get('p_academic_year') or settings.SCHOOLDESK_ACADEMIC_YEAR
    return FeeService.backfill_missing_fees(_school_id(auth), academic_year)


# =============================================================================
# SUBJECTS
# =============================================================================

@rpc_procedure('get_available_subjects')
def get_available_subjects(params, auth):
    return [_subject_data(s) for s in SubjectService.get_available_subjects(_school_id(auth))]


@rpc_procedure('create_subject')
def create_subject(params, auth):
    subject = SubjectService.create_subject(
        _school_id(auth), params.get('p_name'), params.get('p_code'), params.get('p_description') or ''
    )
    return _subject_data(subject)


@rpc_procedure('update_subject')
def update_subject(params, auth):
    subject = SubjectService.update_subject(
        params.get('p_id'), _school_id(auth),
        params.get('p_name'), params.get('p_code'), params.get('p_description') or '',
    )
    return _subject_data(subject)


@rpc_procedure('delete_subject')
def delete_subject(params, auth):
    SubjectService.delete_subject(params.get('p_id'), _school_id(auth))
    return {'deleted': True}


# =============================================================================
# STUDENTS
# =============================================================================

@rpc_procedure('create_student_with_parent')
def create_student_with_parent(params, auth):
    student = StudentService.create_student_with_parent(
        _school_id(auth),
        admission_number=params.get('p_admission_number'),
        name=params.get('p_name'),
        dob=params.get('p_dob'),
        gender=params.get('p_gender') or 'male',
        class_id=params.get('p_class_id'),
        section_id=params.get('p_section_id'),
        blood_group=params.get('p_blood_group') or '',
        address=params.get('p_address') or '',
        admission_date=params.get('p_admission_date'),
        status=params.get('p_status') or 'active',
        parent_name=params.get('p_parent_name') or '',
        parent_phone=params.get('p_parent_phone') or '',
    )
    return {
        'id': str(student.pk),
        'admission_number': student.admission_number,
        'parent_id': str(student.parent_id) if student.parent_id else None,
    }


# =============================================================================
# ACCOUNTS
# =============================================================================

@rpc_procedure('link_user_to_demo_school', public=True)
def link_user_to_demo_school(params, auth):
    school = demo_school()
    if school is None:
        return None
    return {'school_id': str(school.pk), 'name': school.name}
