# =============== MIDDLEWARE FOR CITY CONTEXT ===============
from .models import City

CITY_SESSION_KEY = 'selected_city'


def active_city(name):
    if not name:
        return None
    return City.objects.filter(name__iexact=name.strip(), is_active=True).first()


class CityContextMiddleware:
    """
    Middleware to attach the shopper's delivery city to the request.

    The ``X-City`` header wins over the city stored in the session. A header
    naming an unknown or inactive city is ignored and the session city is
    used instead; with neither, ``request.current_city`` is ``None``.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.current_city = active_city(request.META.get('HTTP_X_CITY'))
        if request.current_city is None and hasattr(request, 'session'):
            request.current_city = active_city(request.session.get(CITY_SESSION_KEY))

        response = self.get_response(request)
        return response


def remember_city(request, city):
    request.session[CITY_SESSION_KEY] = city.name
    request.current_city = city


def forget_city(request):
    request.session.pop(CITY_SESSION_KEY, None)
    request.current_city = None
