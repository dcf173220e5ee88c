from .userserializer import UserSerializer, UserSummarySerializer
from .followserializer import FollowActionSerializer, FollowSerializer, RelationshipSerializer
from .messageserializer import MessageSerializer, OutgoingMessageSerializer, SeenSerializer
from .chatserializer import ChatSerializer
