from datetime import timedelta
from io import StringIO
from unittest.mock import Mock, patch

from django.core.management import call_command
from django.db import IntegrityError, connection, transaction
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.test import APITestCase

from social import relationships, sockets
from social.discovery import discover
from social.models import Chat, Follow, FollowState, Message, User
from social.presence import PresenceRegistry, Relay
from social.utils import failure_payload, room_name


def make_user(user_id, full_name, role=User.Role.STUDENT, **extra):
    return User.objects.create_user(
        id=user_id,
        username=full_name.lower().replace(" ", ""),
        email=f"{user_id}@campus.test",
        password="pass1234",
        full_name=full_name,
        role=role,
        **extra,
    )


def edge_states(user):
    following = [(edge.target_id, edge.approved) for edge in user.following.all()]
    followers = [(edge.follower_id, edge.approved) for edge in user.followers.all()]
    return following, followers


class FollowRequestTests(APITestCase):
    """Sending follow requests through /api/follow/."""

    def setUp(self):
        self.alice = make_user("u1", "Alice Student")
        self.bob = make_user("u2", "Bob Student")

    def test_request_creates_pending_edge_on_both_lists(self):
        resp = self.client.post("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(resp.data["success"])
        self.assertEqual(resp.data["follower"]["following"], [{"user": "u2", "approved": False, "state": "pending"}])
        self.assertEqual(resp.data["target"]["followers"], [{"user": "u1", "approved": False, "state": "pending"}])
        self.assertIsNone(resp.data["chatId"])
        self.assertFalse(Chat.objects.exists())

    def test_follow_self_is_rejected(self):
        resp = self.client.post("/api/follow/", {"follower": "u1", "target": "u1"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data, {"success": False, "message": "You cannot follow yourself."})
        self.assertFalse(Follow.objects.exists())

    def test_follow_unknown_user_is_not_found(self):
        resp = self.client.post("/api/follow/", {"follower": "u1", "target": "ghost"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(resp.data["success"])
        self.assertFalse(Follow.objects.exists())

    def test_duplicate_request_conflicts(self):
        self.client.post("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")
        resp = self.client.post("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Follow.objects.count(), 1)

    def test_missing_target_is_a_validation_error(self):
        resp = self.client.post("/api/follow/", {"follower": "u1"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data["success"])
        self.assertTrue(resp.data["message"].startswith("target"))

    def test_follow_back_makes_both_edges_approved(self):
        self.client.post("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")
        resp = self.client.post("/api/follow/", {"follower": "u2", "target": "u1"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(edge_states(self.alice), ([("u2", True)], [("u2", True)]))
        self.assertEqual(edge_states(self.bob), ([("u1", True)], [("u1", True)]))
        self.assertEqual(Chat.objects.for_user("u1").count(), 1)
        self.assertEqual(resp.data["chatId"], Chat.objects.get().pk)

    def test_follow_after_approved_reverse_edge_stays_pending(self):
        Follow.objects.create(follower=self.bob, target=self.alice, state=FollowState.APPROVED)

        relationships.request_follow("u1", "u2")

        edge = Follow.objects.get(follower=self.alice, target=self.bob)
        self.assertEqual(edge.state, FollowState.PENDING)
        self.assertFalse(Chat.objects.exists())


class ApproveFollowTests(APITestCase):
    """Approving follow requests and provisioning chats for mutual pairs."""

    def setUp(self):
        self.alice = make_user("u1", "Alice Student")
        self.bob = make_user("u2", "Bob Student")

    def test_one_way_approval_does_not_create_chat(self):
        relationships.request_follow("u1", "u2")

        # bob approves alice's request
        resp = self.client.patch("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["follower"]["following"], [{"user": "u2", "approved": True, "state": "approved"}])
        self.assertEqual(resp.data["target"]["followers"], [{"user": "u1", "approved": True, "state": "approved"}])
        self.assertIsNone(resp.data["chatId"])
        self.assertFalse(Chat.objects.exists())

    def test_second_approval_creates_single_chat(self):
        Follow.objects.create(follower=self.alice, target=self.bob)
        Follow.objects.create(follower=self.bob, target=self.alice)

        first = relationships.approve_follow("u2", "u1")
        self.assertIsNone(first.chat)

        second = relationships.approve_follow("u1", "u2")
        self.assertIsNotNone(second.chat)
        self.assertEqual(Chat.objects.count(), 1)
        self.assertEqual(second.chat.participant_ids, ["u1", "u2"])

    def test_approve_is_idempotent(self):
        relationships.request_follow("u1", "u2")
        relationships.request_follow("u2", "u1")

        first = relationships.approve_follow("u2", "u1")
        second = relationships.approve_follow("u2", "u1")

        self.assertEqual(first.message, "Follow request already approved.")
        self.assertEqual(first.chat.pk, second.chat.pk)
        self.assertEqual(Chat.objects.count(), 1)
        self.assertEqual(
            list(Follow.objects.values_list("state", flat=True)),
            [FollowState.APPROVED, FollowState.APPROVED],
        )

    def test_approve_from_either_side_keeps_one_chat(self):
        relationships.request_follow("u1", "u2")
        relationships.request_follow("u2", "u1")

        relationships.approve_follow("u1", "u2")
        relationships.approve_follow("u2", "u1")

        self.assertEqual(Chat.objects.count(), 1)

    def test_approve_missing_request_is_not_found(self):
        resp = self.client.patch("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["message"], "Follow request not found.")

    def test_approve_unknown_user_is_not_found(self):
        with self.assertRaises(NotFound):
            relationships.approve_follow("ghost", "u1")

    def test_chat_pair_is_unique_in_store(self):
        Chat.objects.create(participant_one=self.alice, participant_two=self.bob)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Chat.objects.create(participant_one=self.alice, participant_two=self.bob)

    def test_reversed_chat_pair_is_rejected(self):
        Chat.objects.create(participant_one=self.alice, participant_two=self.bob)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Chat.objects.create(participant_one=self.bob, participant_two=self.alice)

        self.assertEqual(Chat.objects.for_user("u1").count(), 1)

    def test_chat_pair_is_stored_sorted(self):
        chat = Chat.objects.create(participant_one=self.bob, participant_two=self.alice)

        chat.refresh_from_db()
        self.assertEqual(chat.participant_ids, ["u1", "u2"])

    def test_unsorted_pair_is_rejected_by_the_database(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Chat.objects.bulk_create([Chat(participant_one=self.bob, participant_two=self.alice)])


class UnfollowTests(APITestCase):
    """Removing edges, which is also how requests are rejected."""

    def setUp(self):
        self.alice = make_user("u1", "Alice Student")
        self.bob = make_user("u2", "Bob Student")

    def test_unfollow_pending_request_leaves_no_edge(self):
        relationships.request_follow("u1", "u2")

        resp = self.client.delete("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["follower"]["following"], [])
        self.assertEqual(resp.data["target"]["followers"], [])
        self.assertFalse(Follow.objects.exists())

    def test_unfollow_approved_edge(self):
        relationships.request_follow("u1", "u2")
        relationships.approve_follow("u2", "u1")

        relationships.unfollow("u1", "u2")

        self.assertEqual(edge_states(self.alice), ([], []))
        self.assertEqual(edge_states(self.bob), ([], []))

    def test_unfollow_without_edge(self):
        resp = self.client.delete("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["message"], "You are not following this user.")

    def test_unfollow_self_is_rejected(self):
        resp = self.client.delete("/api/follow/", {"follower": "u1", "target": "u1"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unfollow_keeps_reverse_edge_and_chat(self):
        relationships.request_follow("u1", "u2")
        relationships.request_follow("u2", "u1")

        relationships.unfollow("u1", "u2")

        self.assertEqual(edge_states(self.alice), ([], [("u2", True)]))
        self.assertEqual(Chat.objects.count(), 1)
        self.assertFalse(relationships.is_mutual(self.alice, self.bob))


class FollowListTests(APITestCase):
    """Listing incoming edges and mutual friends."""

    def setUp(self):
        self.receiver = make_user("u1", "Receiver")
        self.sender1 = make_user("u2", "Sender One")
        self.sender2 = make_user("u3", "Sender Two")
        relationships.request_follow("u2", "u1")
        relationships.request_follow("u3", "u1")
        relationships.approve_follow("u1", "u3")

    def test_list_pending_requests(self):
        resp = self.client.get("/api/follow/?user=u1&status=pending")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]["follower"]["_id"], "u2")
        self.assertFalse(resp.data[0]["approved"])

    def test_list_all_incoming(self):
        resp = self.client.get("/api/follow/?user=u1")
        self.assertEqual({item["follower"]["_id"] for item in resp.data}, {"u2", "u3"})

    def test_user_parameter_required(self):
        resp = self.client.get("/api/follow/")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_friends_user_parameter_required(self):
        resp = self.client.get("/api/friends/")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data, {"success": False, "message": "The 'user' query parameter is required."})

    def test_friends_are_mutual_only(self):
        resp = self.client.get("/api/friends/?user=u1")
        self.assertEqual(resp.data, [])

        relationships.request_follow("u1", "u3")
        relationships.approve_follow("u3", "u1")

        resp = self.client.get("/api/friends/?user=u1")
        self.assertEqual([friend["_id"] for friend in resp.data], ["u3"])


class DiscoveryTests(APITestCase):
    """The four discovery buckets."""

    def setUp(self):
        self.me = make_user("u1", "Me")
        self.asked = make_user("u2", "Asked By Me")
        self.asking = make_user("u3", "Asking Me")
        self.one_way = make_user("u4", "One Way")
        self.friend = make_user("u5", "Friend")
        self.stranger = make_user("u6", "Stranger")
        self.admin = make_user("a1", "Admin", role=User.Role.ADMIN)

        relationships.request_follow("u1", "u2")
        relationships.request_follow("u3", "u1")
        relationships.request_follow("u1", "u4")
        relationships.approve_follow("u4", "u1")
        relationships.request_follow("u1", "u5")
        relationships.request_follow("u5", "u1")

    def test_buckets(self):
        buckets = discover("u1")

        self.assertEqual(buckets["sent"], [self.asked])
        self.assertEqual(buckets["received"], [self.asking])
        self.assertEqual(buckets["not_following_back"], [self.one_way])
        self.assertEqual(buckets["suggestions"], [self.stranger])

    @override_settings(SOCIAL_SUGGESTION_SAMPLE_SIZE=1)
    def test_suggestions_are_bounded(self):
        make_user("u7", "Another Stranger")

        resp = self.client.get("/api/users/u1/discover/")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data["suggestions"]), 1)
        self.assertIn(resp.data["suggestions"][0]["_id"], {"u6", "u7"})
        self.assertEqual([u["_id"] for u in resp.data["notFollowingBack"]], ["u4"])

    def test_unknown_user(self):
        resp = self.client.get("/api/users/ghost/discover/")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data, {"success": False, "message": "User not found."})


class PresenceRegistryTests(SimpleTestCase):

    def test_room_name_is_order_independent(self):
        self.assertEqual(room_name("u2", "u1"), "u1_u2")
        self.assertEqual(room_name("u1", "u2"), "u1_u2")

    def test_join_enters_server_room(self):
        server = Mock()
        PresenceRegistry(server).join("sid-a", "u1_u2")
        server.enter_room.assert_called_once_with("sid-a", "u1_u2")

    def test_drop_leaves_chat_rooms_only(self):
        server = Mock()
        server.rooms.return_value = ["sid-a", "u1_u2", "u1_u3"]

        self.assertEqual(PresenceRegistry(server).drop("sid-a"), {"u1_u2", "u1_u3"})
        server.rooms.assert_called_once_with("sid-a")
        self.assertEqual(
            sorted(c.args for c in server.leave_room.call_args_list),
            [("sid-a", "u1_u2"), ("sid-a", "u1_u3")],
        )

    def test_drop_unknown_connection(self):
        server = Mock()
        server.rooms.return_value = []
        self.assertEqual(PresenceRegistry(server).drop("nobody"), set())
        server.leave_room.assert_not_called()


class RelayPresenceTests(TestCase):
    """Online/offline transitions and room joins, with the socket server mocked."""

    def setUp(self):
        self.alice = make_user("u1", "Alice Student")
        self.bob = make_user("u2", "Bob Student")
        relationships.request_follow("u1", "u2")
        self.chat = relationships.request_follow("u2", "u1").chat
        self.server = Mock()
        self.relay = Relay(self.server)

    def test_join_room(self):
        room = self.relay.join_room("sid-1", "u1", self.chat.pk)

        self.assertEqual(room, "u1_u2")
        self.server.enter_room.assert_called_once_with("sid-1", "u1_u2")

    def test_join_unknown_chat_is_ignored(self):
        self.assertIsNone(self.relay.join_room("sid-1", "u1", "missing"))
        self.assertIsNone(self.relay.join_room("sid-1", "u9", self.chat.pk))
        self.server.enter_room.assert_not_called()

    def test_set_active_with_inactive_friend(self):
        User.objects.filter(pk="u1").update(last_seen="2024-01-01T00:00:00Z")

        result = self.relay.set_active("sid-1", "u1")

        self.assertEqual(result["activeFriends"], [])
        self.assertTrue(result["success"])
        self.server.emit.assert_called_once_with("newUserOnline", "u1")
        self.server.enter_room.assert_not_called()
        self.alice.refresh_from_db()
        self.assertTrue(self.alice.active)
        self.assertIsNone(self.alice.last_seen)

    def test_set_active_with_active_friend(self):
        self.relay.set_active("sid-2", "u2")
        self.server.reset_mock()

        result = self.relay.set_active("sid-1", "u1")

        self.assertEqual(result["activeFriends"], [{
            "_id": "u2",
            "fullName": "Bob Student",
            "profileImage": "",
            "chatId": self.chat.pk,
        }])
        self.server.enter_room.assert_called_once_with("sid-1", "u1_u2")
        self.assertEqual(self.server.emit.call_count, 2)
        self.server.emit.assert_any_call("newUserOnline", "u1")
        # the room hears about it, the connection that went online does not
        self.server.emit.assert_any_call(
            "userActive", {"userId": "u1", "chatId": self.chat.pk}, to="u1_u2", skip_sid="sid-1"
        )

    def test_set_inactive_notifies_rooms(self):
        self.relay.set_active("sid-1", "u1")
        self.server.reset_mock()

        result = self.relay.set_inactive("sid-1", "u1")

        self.assertEqual(result, {"success": True})
        self.alice.refresh_from_db()
        self.assertFalse(self.alice.active)
        self.assertIsNotNone(self.alice.last_seen)
        self.server.emit.assert_any_call("newUserOffline", "u1")
        room_calls = [c for c in self.server.emit.call_args_list if c.args[0] == "userInactive"]
        self.assertEqual(len(room_calls), 1)
        self.assertEqual(room_calls[0].kwargs, {"to": "u1_u2", "skip_sid": "sid-1"})
        self.assertEqual(room_calls[0].args[1]["chatId"], self.chat.pk)
        self.assertIsNotNone(room_calls[0].args[1]["lastSeen"])

    def test_unknown_user_presence(self):
        with self.assertRaises(NotFound):
            self.relay.set_active("sid-1", "ghost")
        self.server.emit.assert_not_called()

    def test_disconnect_drops_membership(self):
        self.server.rooms.return_value = ["sid-1", "u1_u2"]

        self.relay.disconnect("sid-1")

        self.server.leave_room.assert_called_once_with("sid-1", "u1_u2")


class RelayMessagingTests(TestCase):
    """Storing and relaying chat messages."""

    def setUp(self):
        self.alice = make_user("u1", "Alice Student")
        self.bob = make_user("u2", "Bob Student")
        self.carol = make_user("u3", "Carol Student")
        relationships.request_follow("u1", "u2")
        self.chat = relationships.request_follow("u2", "u1").chat
        self.server = Mock()
        self.relay = Relay(self.server)

    def test_send_text_message(self):
        self.relay.join_room("sid-2", "u2", self.chat.pk)

        result = self.relay.send_message(
            "sid-1", {"type": "text", "value": "hi", "userId": "u1", "chatId": self.chat.pk}
        )

        self.assertTrue(result["success"])
        self.assertEqual(result["data"]["content"], "hi")
        self.assertEqual(result["data"]["sender"]["_id"], "u1")
        self.assertEqual(result["data"]["sender"]["fullName"], "Alice Student")

        message = Message.objects.get()
        self.chat.refresh_from_db()
        self.assertEqual(self.chat.last_message, message)

        self.server.enter_room.assert_any_call("sid-1", "u1_u2")
        room_calls = [c for c in self.server.emit.call_args_list if c.args[0] == "newMessage"]
        self.assertEqual(len(room_calls), 1)
        self.assertEqual(room_calls[0].kwargs, {"to": "u1_u2", "skip_sid": None})
        payload = self.server.emit.call_args_list[0].args[1]
        self.assertEqual(payload["senderId"], "u1")
        self.assertEqual(payload["receiverId"], "u2")
        self.assertEqual(payload["chatId"], self.chat.pk)
        self.assertEqual(payload["messageData"]["_id"], message.pk)

    def test_image_payload_goes_to_image_field(self):
        self.relay.send_message(
            "sid-1", {"type": "image", "value": "/uploads/cat.png", "userId": "u2", "chatId": self.chat.pk}
        )

        message = Message.objects.get()
        self.assertEqual(message.image, "/uploads/cat.png")
        self.assertIsNone(message.content)
        self.assertEqual(message.message_type, "image")

    def test_unknown_chat(self):
        with self.assertRaises(NotFound) as ctx:
            self.relay.send_message("sid-1", {"type": "text", "value": "hi", "userId": "u1", "chatId": "missing"})

        self.assertEqual(failure_payload(ctx.exception), {"success": False, "message": "Chat not found"})
        self.assertFalse(Message.objects.exists())
        self.server.emit.assert_not_called()

    def test_unsupported_type(self):
        with self.assertRaises(ValidationError) as ctx:
            self.relay.send_message("sid-1", {"type": "audio", "value": "x", "userId": "u1", "chatId": self.chat.pk})

        self.assertEqual(failure_payload(ctx.exception)["message"], "Invalid message type")
        self.assertFalse(Message.objects.exists())

    def test_missing_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            self.relay.send_message("sid-1", {"type": "text", "userId": "u1", "chatId": self.chat.pk})

        self.assertEqual(failure_payload(ctx.exception)["message"], "Missing required fields")
        self.assertFalse(Message.objects.exists())

    def test_sender_outside_chat(self):
        with self.assertRaises(NotFound) as ctx:
            self.relay.send_message("sid-3", {"type": "text", "value": "hi", "userId": "u3", "chatId": self.chat.pk})

        self.assertEqual(failure_payload(ctx.exception)["message"], "Receiver not found")
        self.assertFalse(Message.objects.exists())

    def test_search_users(self):
        make_user("a1", "Alice Admin", role=User.Role.ADMIN)
        make_user("u4", "ALICE Other")
        relationships.request_follow("u3", "u4")

        result = self.relay.search_users("u3", "alice")

        self.assertTrue(result["success"])
        self.assertEqual([u["_id"] for u in result["users"]], ["u1"])

        result = self.relay.search_users("u1", "student")
        self.assertEqual({u["_id"] for u in result["users"]}, {"u3"})


@patch("social.sockets.close_old_connections")
class SocketEventTests(TestCase):
    """Event handlers always answer with an acknowledgement."""

    def setUp(self):
        make_user("u1", "Alice Student")

    def test_rejected_event_is_acknowledged(self, _close):
        ack = sockets.add_message("sid-1", {"type": "text", "value": "hi", "userId": "u1", "chatId": "missing"})
        self.assertEqual(ack, {"success": False, "message": "Chat not found"})

    def test_unexpected_error_is_acknowledged(self, _close):
        with patch.object(sockets.relay, "set_active", side_effect=RuntimeError("boom")):
            ack = sockets.set_active("sid-1", "u1")
        self.assertEqual(ack, {"success": False, "message": "Server error"})

    def test_events_are_registered(self, _close):
        handlers = sockets.sio.handlers["/"]
        for event in ("joinRoom", "setActive", "setInactive", "addMessage", "searchUser", "disconnect"):
            self.assertIn(event, handlers)


class ChatApiTests(APITestCase):
    """Chat list, message history and read receipts."""

    def setUp(self):
        self.alice = make_user("u1", "Alice Student")
        self.bob = make_user("u2", "Bob Student")
        self.carol = make_user("u3", "Carol Student")
        relationships.request_follow("u1", "u2")
        self.chat = relationships.request_follow("u2", "u1").chat
        self.relay = Relay(Mock())
        self.relay.send_message("sid-1", {"type": "text", "value": "hello", "userId": "u1", "chatId": self.chat.pk})
        self.relay.send_message("sid-2", {"type": "text", "value": "hey", "userId": "u2", "chatId": self.chat.pk})
        Message.objects.filter(content="hello").update(created_at=timezone.now() - timedelta(minutes=1))

    def test_chat_list(self):
        resp = self.client.get("/api/chats/?user=u1")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data["chats"]), 1)
        row = resp.data["chats"][0]
        self.assertEqual(row["chatId"], self.chat.pk)
        self.assertEqual(row["userId"], "u2")
        self.assertEqual(row["fullName"], "Bob Student")
        self.assertEqual(row["lastMessage"], "hey")

    def test_chat_list_requires_user(self):
        self.assertEqual(self.client.get("/api/chats/").status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get("/api/chats/?user=ghost").status_code, status.HTTP_404_NOT_FOUND)

    def test_messages_oldest_first(self):
        resp = self.client.get(f"/api/chats/{self.chat.pk}/messages/")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([m["content"] for m in resp.data["messages"]], ["hello", "hey"])
        self.assertEqual(resp.data["messages"][0]["sender"]["_id"], "u1")

    def test_mark_seen(self):
        resp = self.client.post(f"/api/chats/{self.chat.pk}/seen/", {"user": "u2"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["updated"], 1)
        hello = Message.objects.get(content="hello")
        self.assertEqual(list(hello.seen_by.values_list("pk", flat=True)), ["u2"])

        # seenBy only grows, a second call changes nothing
        resp = self.client.post(f"/api/chats/{self.chat.pk}/seen/", {"user": "u2"}, format="json")
        self.assertEqual(resp.data["updated"], 0)

    def test_mark_seen_covers_every_unseen_message(self):
        for text in ("one", "two"):
            self.relay.send_message("sid-1", {"type": "text", "value": text, "userId": "u1", "chatId": self.chat.pk})

        resp = self.client.post(f"/api/chats/{self.chat.pk}/seen/", {"user": "u2"}, format="json")

        self.assertEqual(resp.data["updated"], 3)
        self.assertEqual(self.bob.seen_messages.count(), 3)
        self.assertFalse(Message.objects.filter(sender=self.alice).exclude(seen_by=self.bob).exists())
        self.assertFalse(Message.objects.filter(sender=self.bob, seen_by=self.bob).exists())

    def test_mark_seen_outside_chat(self):
        resp = self.client.post(f"/api/chats/{self.chat.pk}/seen/", {"user": "u3"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(resp.data["success"])


class MessagingScenarioTests(APITestCase):
    """Follow, approve, follow back, then chat in real time."""

    def test_follow_to_message(self):
        make_user("u1", "Alice Student")
        make_user("u2", "Bob Student")

        self.client.post("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")
        resp = self.client.patch("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")
        self.assertIsNone(resp.data["chatId"])

        self.client.post("/api/follow/", {"follower": "u2", "target": "u1"}, format="json")
        resp = self.client.patch("/api/follow/", {"follower": "u2", "target": "u1"}, format="json")
        chat_id = resp.data["chatId"]
        self.assertEqual(Chat.objects.get().participant_ids, ["u1", "u2"])

        server = Mock()
        relay = Relay(server)
        relay.join_room("sid-bob", "u2", chat_id)
        ack = relay.send_message("sid-alice", {"type": "text", "value": "hi", "userId": "u1", "chatId": chat_id})

        self.assertTrue(ack["success"])
        self.assertEqual(ack["data"]["content"], "hi")
        self.assertEqual(ack["data"]["sender"]["_id"], "u1")
        server.enter_room.assert_any_call("sid-bob", "u1_u2")
        server.emit.assert_any_call("newMessage", server.emit.call_args.args[1], to="u1_u2", skip_sid=None)


class ErrorHandlingTests(APITestCase):

    @patch("social.relationships.request_follow", side_effect=RuntimeError("db down"))
    def test_unexpected_error_is_generic_500(self, _request_follow):
        resp = self.client.post("/api/follow/", {"follower": "u1", "target": "u2"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(resp.data, {"success": False, "message": "Server error"})


class ResetPresenceCommandTests(TestCase):

    def test_marks_active_users_inactive(self):
        make_user("u1", "Alice Student", active=True)
        make_user("u2", "Bob Student")

        out = StringIO()
        call_command("reset_presence", stdout=out)

        self.assertIn("Marked 1 user(s) inactive.", out.getvalue())
        alice = User.objects.get(pk="u1")
        self.assertFalse(alice.active)
        self.assertIsNotNone(alice.last_seen)
        self.assertIsNone(User.objects.get(pk="u2").last_seen)


class DatabaseConstraintTests(TestCase):
    """Uniqueness needed by the follow engine lives in the database."""

    def _unique_columns(self, table_name):
        constraints = connection.introspection.get_constraints(connection.cursor(), table_name)
        return {tuple(info["columns"]) for info in constraints.values() if info.get("unique")}

    def test_chat_pair_unique(self):
        self.assertIn(("participant_one_id", "participant_two_id"), self._unique_columns("social_chat"))

    def test_follow_edge_unique(self):
        self.assertIn(("follower_id", "target_id"), self._unique_columns("social_follow"))
