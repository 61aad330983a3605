from core.realtime import ChangeFeedConsumer
from studyhalls.signals import GROUP


class StudyHallConsumer(ChangeFeedConsumer):
    """Occupancy changes for all study halls.

    Connection URL: ws://domain/ws/study-halls/
    """

    group_name = GROUP
