from django.urls import path
from social import views

urlpatterns = [
    # Follow API
    path("api/follow/", views.FollowManagerAPIView.as_view(), name="api_follow"),
    path("api/friends/", views.FriendListAPIView.as_view(), name="api_friends"),
    path("api/users/<str:pk>/discover/", views.DiscoveryAPIView.as_view(), name="api_user_discover"),

    # Chats API
    path("api/chats/", views.ChatListAPIView.as_view(), name="api_chats"),
    path("api/chats/<str:chat_id>/messages/", views.ChatMessagesAPIView.as_view(), name="api_chat_messages"),
    path("api/chats/<str:chat_id>/seen/", views.MessageSeenAPIView.as_view(), name="api_chat_seen"),
]
