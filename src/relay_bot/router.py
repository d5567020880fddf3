# src/relay_bot/router.py
import logging
from enum import Enum
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message, User

from languages import Texts
from shared.config import BotConfig
from shared.database import StoreError, TicketDatabase
from shared.models import ChatId, Ticket, ThreadId, UserId

logger = logging.getLogger(__name__)

START_COMMAND = "/start"


class RouteOutcome(str, Enum):
    IGNORED = "ignored"              # нет отправителя / бот
    START = "start"                  # ответили на /start
    DROPPED = "dropped"              # сообщение вне известного топика
    TO_CUSTOMER = "to_customer"      # ответ сотрудника ушёл клиенту
    TO_STAFF = "to_staff"            # сообщение клиента ушло в его топик
    FIRST_CONTACT = "first_contact"  # создан топик, отправлено приветствие
    FAILED = "failed"                # сбой БД или создания топика


class ContentKind(str, Enum):
    PHOTO = "photo"
    DOCUMENT = "document"
    TEXT = "text"


def classify_content(message: Message) -> ContentKind:
    """
    Фото важнее документа, всё остальное уходит как текст.
    """
    if message.photo:
        return ContentKind.PHOTO
    if message.document is not None:
        return ContentKind.DOCUMENT
    return ContentKind.TEXT


def topic_title(user: User, texts: Texts) -> str:
    username = user.username or ""
    if not username.strip():
        return texts.generic_user_title.format(user_id=user.id)
    return username


class TicketRouter:
    """
    Маршрутизация сообщений между личками клиентов и топиками группы поддержки.
    Состояние между вызовами хранится только в TicketDatabase.
    """

    def __init__(self, bot: Bot, db: TicketDatabase, config: BotConfig, texts: Texts):
        self.bot = bot
        self.db = db
        self.config = config
        self.texts = texts

    async def handle(self, message: Optional[Message]) -> RouteOutcome:
        if message is None or message.from_user is None:
            return RouteOutcome.IGNORED

        # Не пересылаем ботов (в т.ч. себя), чтобы не зациклиться
        if message.from_user.is_bot:
            return RouteOutcome.IGNORED

        if message.text == START_COMMAND:
            await self._reply(message.chat.id, self.texts.start_hint)
            return RouteOutcome.START

        try:
            if message.chat.id == self.config.chat_id:
                return await self.route_from_staff(message)
            return await self.route_from_customer(message)
        except StoreError as e:
            logger.error(
                "Ticket store failure, message dropped: chat_id=%s user_id=%s err=%s",
                message.chat.id,
                message.from_user.id,
                e,
            )
            return RouteOutcome.FAILED

    # ====================== ГРУППА ПОДДЕРЖКИ → КЛИЕНТ ======================

    async def route_from_staff(self, message: Message) -> RouteOutcome:
        thread_id = message.message_thread_id
        if not thread_id:
            logger.debug("Staff message %s outside of a topic, skipped", message.message_id)
            return RouteOutcome.DROPPED

        ticket = await self.db.get_by_thread(ThreadId(thread_id))
        if ticket is None:
            logger.debug("No ticket for thread %s, staff message skipped", thread_id)
            return RouteOutcome.DROPPED

        await self.forward(message, chat_id=ticket.user_chat_id)
        await self.db.upsert(ticket)
        return RouteOutcome.TO_CUSTOMER

    # ====================== КЛИЕНТ → ГРУППА ПОДДЕРЖКИ ======================

    async def route_from_customer(self, message: Message) -> RouteOutcome:
        user = message.from_user
        ticket = await self.db.get_by_user(UserId(user.id))

        first_contact = ticket is None or not ticket.has_thread
        if first_contact:
            ticket = await self.open_ticket(message)
            if ticket is None:
                return RouteOutcome.FAILED

        await self.forward(message, chat_id=self.config.chat_id, thread_id=ticket.thread_id)
        await self.db.upsert(ticket)

        if first_contact:
            await self._reply(message.chat.id, self.config.first_message)
            return RouteOutcome.FIRST_CONTACT
        return RouteOutcome.TO_STAFF

    async def open_ticket(self, message: Message) -> Optional[Ticket]:
        """
        Создаёт топик в группе поддержки и сохраняет тикет.
        None — топик создать не удалось, сообщение дальше не маршрутизируем.
        """
        user = message.from_user
        title = topic_title(user, self.texts)

        try:
            topic = await self.bot.create_forum_topic(chat_id=self.config.chat_id, name=title)
        except TelegramAPIError as e:
            logger.error(
                "Failed to create forum topic for %s [%s]: %s",
                user.username,
                user.id,
                e,
            )
            return None

        ticket = await self.db.upsert(
            Ticket(
                user_id=UserId(user.id),
                user_chat_id=ChatId(message.chat.id),
                thread_id=ThreadId(topic.message_thread_id),
            )
        )
        logger.info(
            "Topic for %s [%s] not found, created thread %s",
            user.username,
            user.id,
            ticket.thread_id,
        )
        return ticket

    # ====================== ОТПРАВКА ======================

    async def forward(
        self,
        message: Message,
        *,
        chat_id: int,
        thread_id: Optional[int] = None,
    ) -> Optional[Message]:
        kind = classify_content(message)
        try:
            if kind is ContentKind.PHOTO:
                return await self.bot.send_photo(
                    chat_id=chat_id,
                    photo=message.photo[-1].file_id,
                    caption=message.caption,
                    caption_entities=message.caption_entities,
                    message_thread_id=thread_id,
                )
            if kind is ContentKind.DOCUMENT:
                return await self.bot.send_document(
                    chat_id=chat_id,
                    document=message.document.file_id,
                    caption=message.caption,
                    caption_entities=message.caption_entities,
                    message_thread_id=thread_id,
                )
            if not message.text:
                logger.warning(
                    "Message %s in chat %s has no text (%s), nothing to forward",
                    message.message_id,
                    message.chat.id,
                    message.content_type,
                )
                return None
            return await self.bot.send_message(
                chat_id=chat_id,
                text=message.text,
                message_thread_id=thread_id,
            )
        except TelegramAPIError as e:
            logger.error(
                "Failed to forward %s from chat %s to chat %s (thread %s): %s",
                kind.value,
                message.chat.id,
                chat_id,
                thread_id,
                e,
            )
            return None

    async def _reply(self, chat_id: int, text: str) -> None:
        try:
            await self.bot.send_message(chat_id=chat_id, text=text)
        except TelegramAPIError as e:
            logger.error(f"Failed to send reply to chat {chat_id}: {e}")
