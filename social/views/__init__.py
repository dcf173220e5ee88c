from .follow_views import DiscoveryAPIView, FollowManagerAPIView, FriendListAPIView
from .chat_views import ChatListAPIView, ChatMessagesAPIView, MessageSeenAPIView
