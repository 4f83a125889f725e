"""Channel routing for competition websockets."""

from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(r"^ws/competitions/(?P<competition_id>\d+)/$", consumers.CompetitionScoreConsumer.as_asgi()),
]
