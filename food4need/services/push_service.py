import asyncio
import logging
from typing import List, Sequence

import firebase_admin
import httpx
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError

from food4need.config import NotificationSettings
from food4need.models.notification import NotificationMessage, SendResult
from food4need.services.ports import PushDeliveryError

logger = logging.getLogger(__name__)

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"
FCM_BATCH_LIMIT = 500
EXPO_BATCH_LIMIT = 100


def init_firebase(credentials_path: str) -> None:
    # One app per process
    if firebase_admin._apps:
        return
    cred = credentials.Certificate(credentials_path)
    firebase_admin.initialize_app(cred)
    logger.info("Firebase Admin SDK initialized.")


def _chunks(items: Sequence, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class FirebasePushSink:
    """Sends through Firebase Cloud Messaging with one send_each call per chunk."""

    def __init__(self, credentials_path: str = "serviceAccountKey.json", initialize: bool = True):
        if initialize:
            init_firebase(credentials_path)

    @staticmethod
    def to_fcm_message(message: NotificationMessage) -> messaging.Message:
        return messaging.Message(
            token=message.token,
            notification=messaging.Notification(title=message.title, body=message.body),
            data={"action": message.action.value},
        )

    async def send_batch(self, messages: Sequence[NotificationMessage]) -> List[SendResult]:
        results: List[SendResult] = []
        for chunk in _chunks(list(messages), FCM_BATCH_LIMIT):
            fcm_messages = [self.to_fcm_message(m) for m in chunk]
            try:
                # The SDK call blocks, keep it off the event loop.
                batch = await asyncio.to_thread(messaging.send_each, fcm_messages)
            except (FirebaseError, ValueError) as e:
                raise PushDeliveryError(f"FCM send_each failed: {e}") from e

            for message, response in zip(chunk, batch.responses):
                results.append(SendResult(
                    token=message.token,
                    recipient_id=message.recipient_id,
                    success=response.success,
                    message_id=response.message_id,
                    error=str(response.exception) if response.exception else None,
                ))
            logger.info(f"FCM batch: {batch.success_count} sent, {batch.failure_count} failed")
        return results


class ExpoPushSink:
    """Sends through Expo's Push API, for clients that register Expo push tokens."""

    def __init__(self, url: str = EXPO_PUSH_URL, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    @staticmethod
    def to_expo_payload(message: NotificationMessage) -> dict:
        return {
            'to': message.token,
            'sound': 'default',
            'title': message.title,
            'body': message.body,
            'data': {'action': message.action.value},
            'channelId': 'default',  # Required for custom Android notification channels
        }

    async def send_batch(self, messages: Sequence[NotificationMessage]) -> List[SendResult]:
        headers = {
            'Accept': 'application/json',
            'Accept-Encoding': 'gzip, deflate',
            'Content-Type': 'application/json',
        }
        results: List[SendResult] = []
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for chunk in _chunks(list(messages), EXPO_BATCH_LIMIT):
                payload = [self.to_expo_payload(m) for m in chunk]
                try:
                    response = await client.post(self.url, json=payload, headers=headers)
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    raise PushDeliveryError(
                        f"Expo push service responded with {e.response.status_code}: {e.response.text}"
                    ) from e
                except httpx.RequestError as e:
                    raise PushDeliveryError(f"Error while requesting Expo's push service: {e}") from e

                body = response.json()
                if body.get("errors"):
                    raise PushDeliveryError(f"Expo push service rejected the request: {body['errors']}")

                tickets = body.get("data") or []
                for index, message in enumerate(chunk):
                    ticket = tickets[index] if index < len(tickets) else {}
                    ok = ticket.get("status") == "ok"
                    results.append(SendResult(
                        token=message.token,
                        recipient_id=message.recipient_id,
                        success=ok,
                        message_id=ticket.get("id"),
                        error=None if ok else ticket.get("message", "No ticket returned"),
                    ))
        return results


def build_push_sink(settings: NotificationSettings):
    if settings.push_provider == "expo":
        return ExpoPushSink()
    return FirebasePushSink(settings.firebase_credentials)
