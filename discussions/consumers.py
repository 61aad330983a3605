from core.realtime import ChangeFeedConsumer
from discussions.signals import GROUP


class DiscussionConsumer(ChangeFeedConsumer):
    """New, edited and deleted posts. Connection URL: ws://domain/ws/discussions/"""

    group_name = GROUP
