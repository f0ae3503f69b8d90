"""
Tests for core request middleware.
"""
import pytest
from django.http import HttpResponse
from django.test import RequestFactory

from apps.core.middleware import RequestIDMiddleware


@pytest.fixture
def middleware():
    return RequestIDMiddleware(get_response=lambda request: HttpResponse('ok'))


class TestRequestIDMiddleware:
    """Test request id injection."""

    def test_generates_request_id(self, middleware):
        request = RequestFactory().get('/v1/health/')

        response = middleware(request)

        assert request.request_id
        assert response['X-Request-ID'] == request.request_id

    def test_reuses_incoming_request_id(self, middleware):
        request = RequestFactory().get('/v1/health/', HTTP_X_REQUEST_ID='caller-123')

        response = middleware(request)

        assert request.request_id == 'caller-123'
        assert response['X-Request-ID'] == 'caller-123'


@pytest.mark.django_db
def test_request_id_on_api_responses(api_client):
    response = api_client.get('/v1/roles/metadata/', HTTP_X_REQUEST_ID='trace-1')
    assert response['X-Request-ID'] == 'trace-1'
