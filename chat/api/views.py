from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired
from chat.api.serializers import ChatMessageSerializer, SendMessageSerializer
from infrastructure.container import container
from utils.exceptions import raise_for_result
from utils.pagination import parse_page_params


class OrderChatViewSet(viewsets.ViewSet):
    """Chat of one order, addressed as chat/<order_id>/..."""

    permission_classes = [ActiveAccountRequired]
    lookup_value_regex = "[0-9a-f-]+"

    def get_service(self):
        return container.chat_service()

    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        if request.method == "POST":
            serializer = SendMessageSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            message = raise_for_result(
                self.get_service().send_message(
                    request.user,
                    pk,
                    serializer.validated_data.get("message", ""),
                    serializer.validated_data.get("image_url", ""),
                )
            )
            return Response(ChatMessageSerializer(message).data, status=status.HTTP_201_CREATED)

        page, size = parse_page_params(request.query_params, default_size=50)
        data = raise_for_result(self.get_service().get_messages(request.user, pk, page, size))
        data["results"] = ChatMessageSerializer(data["results"], many=True).data
        return Response(data)

    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        updated = raise_for_result(self.get_service().mark_read(request.user, pk))
        return Response({"updated": updated})

    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):
        return Response(raise_for_result(self.get_service().activate_chat(request.user, pk)))

    @action(detail=True, methods=["get"])
    def active(self, request, pk=None):
        return Response(raise_for_result(self.get_service().is_chat_active(request.user, pk)))

    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        return Response(raise_for_result(self.get_service().leave_chat(request.user, pk)))

    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        count = raise_for_result(self.get_service().unread_count(request.user, request.query_params.get("order")))
        return Response({"unread": count})
