from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import Chat, Follow, Message, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("id", "username", "full_name", "email", "role", "active", "is_approved")
    list_filter = ("role", "active", "is_approved")
    search_fields = ("username", "full_name", "email", "id_number")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Campus", {"fields": ("full_name", "id_number", "role", "bio", "profile_image", "is_approved")}),
        ("Presence", {"fields": ("active", "last_seen")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Campus", {"fields": ("email", "full_name", "id_number", "role")}),
    )


@admin.register(Follow)
class FollowAdmin(admin.ModelAdmin):
    list_display = ["follower", "target", "state", "created_at"]
    list_filter = ["state"]
    search_fields = ["follower__username", "target__username"]


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ("id", "participant_one", "participant_two", "updated_at")
    search_fields = ("participant_one__username", "participant_two__username")
    raw_id_fields = ("last_message",)


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "chat", "sender", "message_type", "created_at")
    search_fields = ("content", "sender__username")
    list_filter = ("created_at",)
