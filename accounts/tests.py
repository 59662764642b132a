import pytest
from datetime import timedelta
from django.db import DatabaseError
from django.urls import reverse
from django.utils import timezone

from accounts.models import CustomUser, AdminUser, AdminOTP
from accounts import otp as otp_service

PASSWORD = 'Wholesale#2024'

pytestmark = pytest.mark.django_db


def login(client, email, password=PASSWORD):
    return client.post(reverse('token_obtain_pair'), {'email': email, 'password': password}, format='json')


# =============== SIGN UP / SIGN IN ===============

def test_signup_creates_account(api_client):
    response = api_client.post(reverse('signup'), {
        'email': 'New.Shop@Example.com',
        'password': PASSWORD,
        'first_name': 'Ravi',
    }, format='json')

    assert response.status_code == 201
    assert response.data['user']['is_admin'] is False
    assert CustomUser.objects.filter(email__iexact='new.shop@example.com').exists()


def test_signup_rejects_existing_email(api_client, make_user):
    make_user(email='shop@example.com')

    response = api_client.post(reverse('signup'), {
        'email': 'shop@example.com', 'password': PASSWORD
    }, format='json')

    assert response.status_code == 400
    assert response.data['error'] is True
    assert response.data['details']['email'] == [
        'Account already exists. Please use the Sign In tab to login'
    ]


def test_signup_runs_password_validators(api_client):
    response = api_client.post(reverse('signup'), {
        'email': 'weak@example.com', 'password': '123'
    }, format='json')

    assert response.status_code == 400
    assert 'password' in response.data['details']


def test_first_sign_in_bootstraps_first_admin(api_client, make_user):
    user = make_user(email='owner@xstore.in')

    response = login(api_client, 'owner@xstore.in')

    assert response.status_code == 200
    assert response.data['bootstrapped'] is True
    assert response.data['is_admin'] is True
    assert response.data['access'] and response.data['refresh']
    assert AdminUser.objects.filter(user=user).exists()
    user.refresh_from_db()
    assert user.last_login_at is not None


def test_non_admin_sign_in_refused_once_admin_exists(api_client, admin_user, make_user):
    make_user(email='shop@example.com')

    response = login(api_client, 'shop@example.com')

    assert response.status_code == 403
    assert response.data['details']['error'] == "You don't have admin privileges"
    assert AdminUser.objects.count() == 1


def test_only_one_concurrent_sign_in_becomes_first_admin(api_client, make_user, mocker):
    winner = make_user(email='owner@xstore.in')
    AdminUser.objects.create(user=winner, email=winner.email, first_admin=True)
    make_user(email='partner@xstore.in')
    # The roster looked empty to both sign-ins
    mocker.patch.object(AdminUser.objects, 'exists', return_value=False)

    response = login(api_client, 'partner@xstore.in')

    assert response.status_code == 403
    assert list(AdminUser.objects.values_list('email', flat=True)) == ['owner@xstore.in']


def test_admin_sign_in_is_not_a_bootstrap(api_client, admin_user):
    response = login(api_client, admin_user.email)

    assert response.status_code == 200
    assert response.data['bootstrapped'] is False


def test_wrong_password_rejected(api_client, admin_user):
    response = login(api_client, admin_user.email, password='not-the-password')

    assert response.status_code == 400
    assert AdminUser.objects.count() == 1


def test_setup_status_reports_missing_admins(api_client, make_user):
    assert api_client.get(reverse('setup_status')).data == {'setup_mode': True}

    user = make_user()
    AdminUser.objects.create(user=user, email=user.email)

    assert api_client.get(reverse('setup_status')).data == {'setup_mode': False}


def test_logout_blacklists_refresh_token(api_client, admin_user):
    tokens = login(api_client, admin_user.email).data
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

    response = api_client.post(reverse('logout'), {'refresh': tokens['refresh']}, format='json')
    assert response.status_code == 205

    api_client.credentials()
    response = api_client.post(reverse('token_refresh'), {'refresh': tokens['refresh']}, format='json')
    assert response.status_code == 401


def test_session_and_admin_status(admin_client):
    session = admin_client.get(reverse('session'))
    assert session.status_code == 200
    assert session.data['is_admin'] is True

    assert admin_client.get(reverse('admin_status')).data == {'is_admin': True}


def test_admin_status_false_for_anonymous(api_client):
    assert api_client.get(reverse('admin_status')).data == {'is_admin': False}


# =============== ADMIN ROSTER ===============

def test_list_admins_requires_admin(api_client, make_user):
    user = make_user()
    api_client.force_authenticate(user=user)

    response = api_client.get(reverse('admin_list_create'))

    assert response.status_code == 403
    assert response.data['message'] == 'Permission denied'


def test_promote_user_by_email(admin_client, make_user):
    user = make_user(email='manager@xstore.in')

    response = admin_client.post(reverse('admin_list_create'), {'email': 'manager@xstore.in'}, format='json')

    assert response.status_code == 201
    assert response.data['admin']['user_id'] == str(user.id)
    assert user.is_xstore_admin

    listing = admin_client.get(reverse('admin_list_create'))
    assert [row['email'] for row in listing.data] == ['manager@xstore.in', 'admin@xstore.in']


def test_promote_rejects_unknown_and_existing_admins(admin_client, admin_user):
    unknown = admin_client.post(reverse('admin_list_create'), {'email': 'ghost@xstore.in'}, format='json')
    assert unknown.status_code == 400

    again = admin_client.post(reverse('admin_list_create'), {'user_id': str(admin_user.id)}, format='json')
    assert again.status_code == 400


def test_remove_admin(admin_client, make_user):
    other = make_user(email='other@xstore.in')
    AdminUser.objects.create(user=other, email=other.email)

    response = admin_client.delete(reverse('admin_remove', args=[other.id]))

    assert response.status_code == 204
    assert not other.is_xstore_admin


def test_cannot_remove_own_admin_rights(admin_client, admin_user):
    response = admin_client.delete(reverse('admin_remove', args=[admin_user.id]))

    assert response.status_code == 400
    assert admin_user.is_xstore_admin


# =============== ADMIN OTP ===============

def test_send_otp_mails_the_approver_only(api_client, mailoutbox, settings):
    settings.XSTORE_ADMIN_APPROVAL_EMAIL = 'approver@xstore.in'

    response = api_client.post(reverse('send_admin_otp'), {'requested_email': 'new.admin@xstore.in'}, format='json')

    assert response.status_code == 200
    assert response.data == {
        'success': True,
        'message': 'OTP sent to admin for verification of new.admin@xstore.in',
        'expires_in': '10 minutes',
    }

    otp = AdminOTP.objects.get(email='new.admin@xstore.in')
    assert len(otp.otp_code) == 6 and otp.otp_code.isdigit()
    assert not otp.verified

    assert len(mailoutbox) == 1
    message = mailoutbox[0]
    assert message.to == ['approver@xstore.in']
    assert otp.otp_code in message.body
    assert 'new.admin@xstore.in' in message.body


def test_send_otp_replaces_earlier_codes(api_client, mailoutbox):
    for _ in range(2):
        api_client.post(reverse('send_admin_otp'), {'requested_email': 'new.admin@xstore.in'}, format='json')

    assert AdminOTP.objects.filter(email='new.admin@xstore.in').count() == 1


def test_send_otp_reports_mail_failure(api_client, mocker):
    mocker.patch('accounts.otp.send_mail', side_effect=ConnectionRefusedError('smtp down'))

    response = api_client.post(reverse('send_admin_otp'), {'requested_email': 'new.admin@xstore.in'}, format='json')

    assert response.status_code == 500
    assert response.data['success'] is False


def test_send_otp_reports_storage_failure(api_client, mailoutbox, mocker):
    mocker.patch.object(AdminOTP.objects, 'create', side_effect=DatabaseError('disk full'))

    response = api_client.post(reverse('send_admin_otp'), {'requested_email': 'new.admin@xstore.in'}, format='json')

    assert response.status_code == 500
    assert response.data == {'success': False, 'error': 'Failed to store OTP'}
    assert mailoutbox == []


def test_verify_otp_marks_code_verified(api_client):
    otp = otp_service.issue_admin_otp('new.admin@xstore.in')

    response = api_client.post(reverse('verify_admin_otp'), {
        'email': 'new.admin@xstore.in', 'otp_code': otp.otp_code
    }, format='json')

    assert response.status_code == 200
    assert response.data['success'] is True
    otp.refresh_from_db()
    assert otp.verified


def test_verify_otp_rejects_wrong_code(api_client):
    otp = otp_service.issue_admin_otp('new.admin@xstore.in')
    wrong = '999999' if otp.otp_code != '999999' else '100000'

    response = api_client.post(reverse('verify_admin_otp'), {
        'email': 'new.admin@xstore.in', 'otp_code': wrong
    }, format='json')

    assert response.status_code == 400
    assert response.data == {'success': False, 'error': 'Invalid or expired OTP code'}


def test_verify_otp_rejects_expired_code(api_client):
    AdminOTP.objects.create(
        email='late@xstore.in',
        otp_code='123456',
        expires_at=timezone.now() - timedelta(minutes=11),
    )

    response = api_client.post(reverse('verify_admin_otp'), {
        'email': 'late@xstore.in', 'otp_code': '123456'
    }, format='json')

    assert response.status_code == 400


def test_verify_otp_cannot_be_reused(api_client):
    otp = otp_service.issue_admin_otp('new.admin@xstore.in')
    payload = {'email': 'new.admin@xstore.in', 'otp_code': otp.otp_code}

    assert api_client.post(reverse('verify_admin_otp'), payload, format='json').status_code == 200
    assert api_client.post(reverse('verify_admin_otp'), payload, format='json').status_code == 400


def test_new_code_expires_after_ttl():
    otp = otp_service.issue_admin_otp('new.admin@xstore.in')

    lifetime = otp.expires_at - otp.created_at
    assert timedelta(minutes=9, seconds=59) < lifetime <= timedelta(minutes=10, seconds=1)


def test_register_admin_requires_verified_otp(api_client):
    otp_service.issue_admin_otp('new.admin@xstore.in')

    response = api_client.post(reverse('register_admin'), {
        'email': 'new.admin@xstore.in', 'password': PASSWORD
    }, format='json')

    assert response.status_code == 400
    assert not CustomUser.objects.filter(email='new.admin@xstore.in').exists()


def test_register_admin_after_verification(api_client):
    otp = otp_service.issue_admin_otp('new.admin@xstore.in')
    otp_service.verify_admin_otp('new.admin@xstore.in', otp.otp_code)

    response = api_client.post(reverse('register_admin'), {
        'email': 'new.admin@xstore.in', 'password': PASSWORD
    }, format='json')

    assert response.status_code == 201
    user = CustomUser.objects.get(email='new.admin@xstore.in')
    assert user.is_xstore_admin
    assert not AdminOTP.objects.filter(email='new.admin@xstore.in').exists()


# =============== SYSTEM ===============

def test_health_check(api_client):
    response = api_client.get(reverse('health_check'))

    assert response.status_code == 200
    assert response.data['status'] == 'healthy'
