"""WebSocket routing for the realtime change feeds."""

from discussions.routing import websocket_urlpatterns as discussion_patterns
from studyhalls.routing import websocket_urlpatterns as study_hall_patterns

websocket_urlpatterns = study_hall_patterns + discussion_patterns
