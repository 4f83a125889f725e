"""
ASGI config for cadet_portal project.

HTTP goes to Django; websockets carry live competition score updates.
"""

import os

from channels.auth import AuthMiddlewareStack
from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'cadet_portal.settings')

django_application = get_asgi_application()

from competitions import routing as competition_routing  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": django_application,
        "websocket": AuthMiddlewareStack(
            URLRouter(
                competition_routing.websocket_urlpatterns,
            )
        ),
    }
)
