from .user import User, generate_object_id
from .follow import Follow, FollowState
from .chat import Chat
from .message import Message, MessageType, PAYLOAD_FIELDS
