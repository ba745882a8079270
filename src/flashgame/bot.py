"""Telegram bot handlers for the flashcard game."""
import html
import logging
import math
from typing import List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import CallbackContext

from flashgame import monitoring
from flashgame.config import settings
from flashgame.models.base import SessionLocal
from flashgame.models.game_models import (
    Difficulty,
    Direction,
    GameFilter,
    ProgressSnapshot,
    SelectionType,
    SessionResult,
    Word,
)
from flashgame.services.game_service import GameService
from flashgame.services.vocabulary_service import VocabularyService

# Get logger for this module
logger = logging.getLogger(__name__)

# Conversation states
MAIN_MENU, CHOOSING, PLAYING, ADDING_WORDS, ADMIN_INPUT = range(5)

# Button texts
MENU = "🏠 Menu"
NEW_GAME = "🃏 New Game"
VIEW_STATISTICS = "📊 Statistics"
ADMIN_MENU = "🛠️ Vocabulary"
HINT = "💡 Hint"
SKIP = "⏭️ Skip"
RESTART = "🔄 Restart"
END_GAME = "🏁 End Game"
PLAY_AGAIN = "🔁 Play Again"
PREV_PAGE = "⬅️ Prev"
NEXT_PAGE = "Next ➡️"

LIST_PAGE_SIZE = 8  # words per page in pickers and admin lists

GAME_SERVICE_KEY = "game_service"


def msg_back_to(text: str) -> str: return f"🔙 {text}"


KB_BACK_TO_MENU = [[InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]]

ERR_MSG_NOT_ADMIN = "You don't have admin privileges"
ERR_MSG_NO_GAME = "There is no game in progress. Start a new one from the menu."
ERR_MSG_NO_WORD = "This word no longer exists."
ERR_MSG_UNEXPECTED = "Something went wrong. Send /start to begin again."


def is_admin(user_id: int) -> bool:
    return user_id in settings.bot.admin_ids


def get_game_service(context: CallbackContext) -> GameService:
    """Game service shared by all chats of this application."""
    service = context.application.bot_data.get(GAME_SERVICE_KEY)
    if service is None:
        service = GameService()
        context.application.bot_data[GAME_SERVICE_KEY] = service
    return service


async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if update.callback_query:
        txt = f" {update.callback_query.data}"
    elif update.message:
        txt = f" {update.message.text}"
    user = update.effective_user
    logger.info(f"Received @{context_type:8} from user {user.username} ({user.id}){txt}")


async def reply(update: Update, text: str, keyboard: Optional[List[List[InlineKeyboardButton]]] = None) -> None:
    """Edit the callback message in place, or answer a typed message."""
    reply_markup = InlineKeyboardMarkup(keyboard) if keyboard else None
    if update.callback_query:
        try:
            await update.callback_query.edit_message_text(text, reply_markup=reply_markup, parse_mode="HTML")
        except BadRequest as e:
            if "not modified" not in str(e).lower():
                raise
            logger.debug(f"Message for user {update.effective_user.id} is already up to date")
    else:
        await update.message.reply_text(text, reply_markup=reply_markup, parse_mode="HTML")


async def handle_error(update: object, context: CallbackContext) -> None:
    """Log errors raised by handlers and tell the user something went wrong."""
    error = context.error
    logger.error(f"Error while handling an update: {error}", exc_info=error)
    monitoring.error_count.labels(error_type=type(error).__name__).inc()
    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text(ERR_MSG_UNEXPECTED)


def page_buttons(page: int, total: int, prefix: str) -> List[List[InlineKeyboardButton]]:
    """Prev / next row for a paged list, empty when everything fits on one page."""
    pages = max(1, math.ceil(total / LIST_PAGE_SIZE))
    row = []
    if page > 1:
        row.append(InlineKeyboardButton(PREV_PAGE, callback_data=f"{prefix}{page - 1}"))
    if page < pages:
        row.append(InlineKeyboardButton(NEXT_PAGE, callback_data=f"{prefix}{page + 1}"))
    return [row] if row else []


def format_progress(progress: ProgressSnapshot) -> str:
    return (
        f"✅ {progress.correct_count} correct · ❌ {progress.incorrect_count} incorrect\n"
        f"⭐ Mastered: {progress.mastered_count}/{progress.total_count} words ({progress.percent}%)"
    )


def format_card(word: Word, progress: ProgressSnapshot, direction: Direction, hint: str = "") -> str:
    target = "English" if direction is Direction.GERMAN_TO_ENGLISH else "German"
    message = (
        f"{format_progress(progress)}\n\n"
        f"<b>{html.escape(word.prompt)}</b>\n"
        f"<i>Type the {target} translation</i>"
    )
    if hint:
        message += f"\n\nHint: {html.escape(hint)}"
    return message


def format_result(result: SessionResult) -> str:
    title = "🎉 Game complete!" if result.all_mastered else "🏁 Game over"
    minutes, seconds = divmod(int(result.elapsed_seconds), 60)
    return (
        f"<b>{title}</b>\n\n"
        f"Correct answers: {result.correct_count}\n"
        f"Incorrect answers: {result.incorrect_count}\n"
        f"Skipped: {result.skipped_count}\n"
        f"Accuracy: {round(result.accuracy * 100)}%\n"
        f"Words mastered: {result.mastered_count} out of {result.total_count}\n"
        f"Time: {minutes}m {seconds:02d}s"
    )


def card_keyboard() -> List[List[InlineKeyboardButton]]:
    return [
        [InlineKeyboardButton(HINT, callback_data="game_hint"),
         InlineKeyboardButton(SKIP, callback_data="game_skip")],
        [InlineKeyboardButton(RESTART, callback_data="game_restart"),
         InlineKeyboardButton(END_GAME, callback_data="game_end")],
    ]


def result_keyboard() -> List[List[InlineKeyboardButton]]:
    return [
        [InlineKeyboardButton(PLAY_AGAIN, callback_data="play_again"),
         InlineKeyboardButton(NEW_GAME, callback_data="new_game")],
        [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")],
    ]


def parse_word_lines(text: str) -> List[tuple]:
    """Read ``german - english`` pairs, one per line."""
    pairs = []
    for line in text.splitlines():
        german, sep, english = line.partition(" - ")
        if sep and german.strip() and english.strip():
            pairs.append((german.strip(), english.strip()))
    return pairs


async def handle_start(update: Update, context: CallbackContext) -> int:
    """Start the conversation and show main menu."""
    await log_received(update, "start")

    user = update.effective_user
    keyboard = [
        [InlineKeyboardButton(NEW_GAME, callback_data="new_game")],
        [InlineKeyboardButton(VIEW_STATISTICS, callback_data="statistics")],
    ]
    if is_admin(user.id):
        keyboard.append([InlineKeyboardButton(ADMIN_MENU, callback_data="admin_menu")])

    message = (f"Willkommen, {html.escape(user.first_name or '')}! 👋\n\n"
               "Practice German vocabulary with flashcards.\n"
               "What would you like to do?")
    await reply(update, message, keyboard)
    return MAIN_MENU


async def handle_callback(update: Update, context: CallbackContext) -> int:
    """Handle callback queries from the menus."""
    query = update.callback_query
    await query.answer()

    await log_received(update, "callback")

    if query.data == "back_to_menu":
        return await handle_start(update, context)
    elif query.data == "new_game":
        return await choose_selection(update, context)
    elif query.data.startswith("select_"):
        return await handle_selection(update, context)
    elif query.data.startswith("difficulty_"):
        return await handle_difficulty(update, context)
    elif query.data.startswith("source_"):
        return await handle_source(update, context)
    elif query.data.startswith("direction_"):
        return await handle_direction(update, context)
    elif query.data.startswith("pick_"):
        return await handle_pick(update, context)
    elif query.data == "play_again":
        return await start_game(update, context)
    elif query.data == "statistics":
        return await show_statistics(update, context)
    elif query.data == "admin_menu":
        return await show_admin_menu(update, context)
    elif query.data.startswith("admin_"):
        return await handle_admin_menu(update, context)

    return MAIN_MENU


async def choose_selection(update: Update, context: CallbackContext) -> int:
    context.user_data["game_filter"] = GameFilter()
    keyboard = [
        [InlineKeyboardButton("📚 All vocabulary", callback_data="select_all")],
        [InlineKeyboardButton("📈 By difficulty", callback_data="select_difficulty")],
        [InlineKeyboardButton("📁 By source", callback_data="select_source")],
        [InlineKeyboardButton("🎯 Pick words", callback_data="select_individual")],
        [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")],
    ]
    await reply(update, "Select words by:", keyboard)
    return CHOOSING


async def handle_selection(update: Update, context: CallbackContext) -> int:
    game_filter = context.user_data.setdefault("game_filter", GameFilter())
    choice = update.callback_query.data[len("select_"):]

    if choice == "difficulty":
        game_filter.selection = SelectionType.BY_DIFFICULTY
        keyboard = [
            [InlineKeyboardButton(d.label, callback_data=f"difficulty_{d.value}") for d in Difficulty],
            [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")],
        ]
        await reply(update, "Choose a difficulty:", keyboard)
        return CHOOSING

    if choice == "source":
        db = SessionLocal()
        try:
            sources = VocabularyService(db).get_all_sources()
        finally:
            db.close()
        if not sources:
            await reply(update, "No sources available yet.", KB_BACK_TO_MENU)
            return MAIN_MENU
        game_filter.selection = SelectionType.BY_SOURCE
        context.user_data["sources"] = sources
        keyboard = [
            [InlineKeyboardButton(source, callback_data=f"source_{i}")]
            for i, source in enumerate(sources)
        ]
        keyboard.append([InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")])
        await reply(update, "Choose a source:", keyboard)
        return CHOOSING

    if choice == "individual":
        game_filter.selection = SelectionType.INDIVIDUAL
        game_filter.word_ids = []
        return await show_word_picker(update, context, 1)

    game_filter.selection = SelectionType.ALL
    return await choose_direction(update, context)


async def handle_difficulty(update: Update, context: CallbackContext) -> int:
    game_filter = context.user_data.setdefault("game_filter", GameFilter())
    game_filter.difficulty = Difficulty(int(update.callback_query.data[len("difficulty_"):]))
    return await choose_direction(update, context)


async def handle_source(update: Update, context: CallbackContext) -> int:
    game_filter = context.user_data.setdefault("game_filter", GameFilter())
    sources = context.user_data.get("sources", [])
    index = int(update.callback_query.data[len("source_"):])
    if index >= len(sources):
        return await choose_selection(update, context)
    game_filter.source = sources[index]
    return await choose_direction(update, context)


async def show_word_picker(update: Update, context: CallbackContext, page: int, note: str = "") -> int:
    """List approved words so the player can tick the ones to practice."""
    game_filter = context.user_data.setdefault("game_filter", GameFilter())
    selected = set(game_filter.word_ids)

    db = SessionLocal()
    try:
        words, total = VocabularyService(db).get_paginated_vocabulary(
            page=page, page_size=LIST_PAGE_SIZE, approved=True
        )
        keyboard = [
            [InlineKeyboardButton(
                f"{'✅' if word.id in selected else '▫️'} {word.german} - {word.english}",
                callback_data=f"pick_word_{word.id}_{page}",
            )]
            for word in words
        ]
    finally:
        db.close()

    if not total:
        await reply(update, "No words available yet.", KB_BACK_TO_MENU)
        return MAIN_MENU

    keyboard.extend(page_buttons(page, total, "pick_page_"))
    keyboard.append([InlineKeyboardButton(f"▶️ Continue ({len(selected)})", callback_data="pick_done")])
    keyboard.extend(KB_BACK_TO_MENU)
    message = f"Pick the words to practice (page {page}):"
    if note:
        message = f"{note}\n\n{message}"
    await reply(update, message, keyboard)
    return CHOOSING


async def handle_pick(update: Update, context: CallbackContext) -> int:
    game_filter = context.user_data.setdefault("game_filter", GameFilter())
    data = update.callback_query.data

    if data == "pick_done":
        if not game_filter.word_ids:
            return await show_word_picker(update, context, 1, note="Pick at least one word.")
        return await choose_direction(update, context)

    if data.startswith("pick_page_"):
        return await show_word_picker(update, context, int(data[len("pick_page_"):]))

    if data.startswith("pick_word_"):
        word_id, page = (int(part) for part in data[len("pick_word_"):].split("_"))
        if word_id in game_filter.word_ids:
            game_filter.word_ids.remove(word_id)
        else:
            game_filter.word_ids.append(word_id)
        return await show_word_picker(update, context, page)

    return await choose_selection(update, context)


async def choose_direction(update: Update, context: CallbackContext) -> int:
    keyboard = [
        [InlineKeyboardButton(d.label, callback_data=f"direction_{d.value}")] for d in Direction
    ]
    keyboard.append([InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")])
    await reply(update, "Choose a direction:", keyboard)
    return CHOOSING


async def handle_direction(update: Update, context: CallbackContext) -> int:
    game_filter = context.user_data.setdefault("game_filter", GameFilter())
    game_filter.direction = Direction(update.callback_query.data[len("direction_"):])
    return await start_game(update, context)


async def start_game(update: Update, context: CallbackContext) -> int:
    """Start a game with the filter collected in the settings flow."""
    user_id = update.effective_user.id
    game_filter = context.user_data.get("game_filter")
    if game_filter is None:
        return await choose_selection(update, context)

    game_service = get_game_service(context)
    db = SessionLocal()
    try:
        word = game_service.start_game(user_id, game_filter, VocabularyService(db))
    except ValueError as e:
        logger.error(f"Could not start game for user {user_id}: {e}")
        monitoring.error_count.labels(error_type="start_game").inc()
        await reply(update, "Could not start the game with these settings.", KB_BACK_TO_MENU)
        return MAIN_MENU
    finally:
        db.close()

    if word is None:
        await reply(
            update,
            "No words available with the selected criteria.\nPlease change your selection.",
            [[InlineKeyboardButton(NEW_GAME, callback_data="new_game"),
              InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]],
        )
        return MAIN_MENU

    await send_card(update, context, word)
    return PLAYING


async def send_card(update: Update, context: CallbackContext, word: Word, hint: str = "", prefix: str = "") -> None:
    game_service = get_game_service(context)
    user_id = update.effective_user.id
    session = game_service.get_session(user_id)
    message = format_card(word, session.tracker.progress(), session.game_filter.direction, hint)
    if prefix:
        message = f"{prefix}\n\n{message}"
    await reply(update, message, card_keyboard())


async def send_result(update: Update, result: SessionResult, prefix: str = "") -> int:
    message = format_result(result)
    if prefix:
        message = f"{prefix}\n\n{message}"
    await reply(update, message, result_keyboard())
    return MAIN_MENU


async def handle_game_message(update: Update, context: CallbackContext) -> int:
    """Check a typed answer."""
    await log_received(update, "answer")

    user_id = update.effective_user.id
    game_service = get_game_service(context)
    if not game_service.has_game(user_id):
        await reply(update, ERR_MSG_NO_GAME, KB_BACK_TO_MENU)
        return MAIN_MENU

    db = SessionLocal()
    try:
        outcome = game_service.submit_answer(user_id, update.message.text or "", VocabularyService(db))
    finally:
        db.close()

    if outcome.is_correct:
        feedback = "✅ Correct!"
    else:
        feedback = (f"❌ Not quite. <b>{html.escape(outcome.word.prompt)}</b> = "
                    f"<i>{html.escape(outcome.expected)}</i>")
    if outcome.mastered:
        feedback += f"\n⭐ You mastered <b>{html.escape(outcome.word.prompt)}</b>!"

    if outcome.completed:
        return await send_result(update, outcome.result, feedback)

    await send_card(update, context, outcome.next_word, prefix=feedback)
    return PLAYING


async def handle_game_callback(update: Update, context: CallbackContext) -> int:
    """Handle the buttons under a card."""
    query = update.callback_query
    if not query.data.startswith("game_"):
        return await handle_callback(update, context)

    await query.answer()
    await log_received(update, "game")

    user_id = update.effective_user.id
    game_service = get_game_service(context)
    if not game_service.has_game(user_id):
        await reply(update, ERR_MSG_NO_GAME, KB_BACK_TO_MENU)
        return MAIN_MENU

    if query.data == "game_hint":
        if game_service.get_session(user_id).hint_shown:
            return PLAYING
        word = game_service.current_word(user_id)
        await send_card(update, context, word, hint=game_service.hint(user_id))
        return PLAYING
    elif query.data == "game_skip":
        session = game_service.get_session(user_id)
        word = game_service.skip(user_id)
        if word is None:
            return await send_result(update, session.result)
        await send_card(update, context, word)
        return PLAYING
    elif query.data == "game_restart":
        word = game_service.restart(user_id)
        await send_card(update, context, word, prefix="🔄 Progress reset.")
        return PLAYING
    elif query.data == "game_end":
        result = game_service.end_game(user_id)
        return await send_result(update, result)

    return PLAYING


async def show_statistics(update: Update, context: CallbackContext) -> int:
    db = SessionLocal()
    try:
        catalog = VocabularyService(db)
        total = catalog.count_words()
        approved = catalog.count_words(approved=True)
        by_difficulty = {d: len(catalog.get_vocabulary_by_difficulty(d)) for d in Difficulty}
        sources = catalog.get_all_sources()
    finally:
        db.close()

    message = (
        f"<b>📊 Vocabulary</b>\n\n"
        f"Words: {total} ({approved} approved)\n"
        + "\n".join(f"{d.label}: {count}" for d, count in by_difficulty.items())
        + f"\nSources: {len(sources)}"
    )
    await reply(update, message, KB_BACK_TO_MENU)
    return MAIN_MENU


async def show_admin_menu(update: Update, context: CallbackContext) -> int:
    if not is_admin(update.effective_user.id):
        await reply(update, ERR_MSG_NOT_ADMIN, KB_BACK_TO_MENU)
        return MAIN_MENU

    db = SessionLocal()
    try:
        sources = VocabularyService(db).get_all_sources()
    finally:
        db.close()
    context.user_data["sources"] = sources

    keyboard = [
        [InlineKeyboardButton("📋 Browse words", callback_data="admin_words_1")],
        [InlineKeyboardButton("📝 Add words", callback_data="admin_add_words")],
    ]
    keyboard.extend(
        [InlineKeyboardButton(f"🗑️ Delete '{source}'", callback_data=f"admin_delete_source_{i}")]
        for i, source in enumerate(sources)
    )
    keyboard.extend(KB_BACK_TO_MENU)
    await reply(update, "<b>🛠️ Vocabulary management</b>", keyboard)
    return MAIN_MENU


async def handle_admin_menu(update: Update, context: CallbackContext) -> int:
    if not is_admin(update.effective_user.id):
        await reply(update, ERR_MSG_NOT_ADMIN, KB_BACK_TO_MENU)
        return MAIN_MENU

    data = update.callback_query.data
    if data == "admin_add_words":
        await reply(
            update,
            "Send words one per line as <code>german - english</code>.\n"
            "The first line may be <code>source: name</code>.",
            KB_BACK_TO_MENU,
        )
        return ADDING_WORDS

    if data.startswith("admin_delete_source_"):
        sources = context.user_data.get("sources", [])
        index = int(data[len("admin_delete_source_"):])
        if index < len(sources):
            db = SessionLocal()
            try:
                deleted = VocabularyService(db).delete_words_by_source(sources[index])
            finally:
                db.close()
            monitoring.words_deleted.inc(deleted)
            await reply(update, f"Deleted {deleted} words from '{html.escape(sources[index])}'.", KB_BACK_TO_MENU)
            return MAIN_MENU

    if data.startswith("admin_words_"):
        return await show_word_list(update, context, int(data[len("admin_words_"):]))

    if data == "admin_search":
        context.user_data["admin_input"] = "search"
        await reply(update, "Send a word to search for in German or English.", KB_BACK_TO_MENU)
        return ADMIN_INPUT

    if data == "admin_search_clear":
        context.user_data.pop("admin_search", None)
        return await show_word_list(update, context, 1)

    if data.startswith("admin_word_"):
        return await show_word_detail(update, context, int(data[len("admin_word_"):]))

    if data.startswith("admin_approve_"):
        word_id = int(data[len("admin_approve_"):])
        db = SessionLocal()
        try:
            catalog = VocabularyService(db)
            word = catalog.get_word(word_id)
            if word is not None:
                catalog.update_word_approval(word_id, not word.approved)
        finally:
            db.close()
        return await show_word_detail(update, context, word_id)

    if data.startswith("admin_edit_"):
        context.user_data["admin_input"] = "edit"
        context.user_data["admin_word_id"] = int(data[len("admin_edit_"):])
        await reply(update, "Send the corrected word as <code>german - english</code>.", KB_BACK_TO_MENU)
        return ADMIN_INPUT

    if data.startswith("admin_remove_"):
        word_id = int(data[len("admin_remove_"):])
        db = SessionLocal()
        try:
            deleted = get_game_service(context).remove_word(word_id, VocabularyService(db))
        finally:
            db.close()
        message = "🗑️ Word deleted." if deleted else ERR_MSG_NO_WORD
        await reply(update, message, words_back_keyboard(context))
        return MAIN_MENU

    return await show_admin_menu(update, context)


def words_back_keyboard(context: CallbackContext) -> List[List[InlineKeyboardButton]]:
    page = context.user_data.get("admin_page", 1)
    return [[InlineKeyboardButton(msg_back_to("Words"), callback_data=f"admin_words_{page}")]]


async def show_word_list(update: Update, context: CallbackContext, page: int) -> int:
    """One page of the catalog, filtered by the admin's search."""
    search = context.user_data.get("admin_search", "")
    context.user_data["admin_page"] = page

    db = SessionLocal()
    try:
        words, total = VocabularyService(db).get_paginated_vocabulary(
            page=page, page_size=LIST_PAGE_SIZE, search_term=search
        )
        keyboard = [
            [InlineKeyboardButton(
                f"{'✅' if word.approved else '⏳'} {word.german} - {word.english}",
                callback_data=f"admin_word_{word.id}",
            )]
            for word in words
        ]
    finally:
        db.close()

    keyboard.extend(page_buttons(page, total, "admin_words_"))
    search_row = [InlineKeyboardButton("🔍 Search", callback_data="admin_search")]
    if search:
        search_row.append(InlineKeyboardButton("✖️ Clear search", callback_data="admin_search_clear"))
    keyboard.append(search_row)
    keyboard.append([InlineKeyboardButton(msg_back_to(ADMIN_MENU), callback_data="admin_menu")])

    message = f"<b>📋 Words</b>\n{total} found"
    if search:
        message += f" for '<i>{html.escape(search)}</i>'"
    message += f", page {page}"
    await reply(update, message, keyboard)
    return MAIN_MENU


async def show_word_detail(update: Update, context: CallbackContext, word_id: int, note: str = "") -> int:
    db = SessionLocal()
    try:
        word = VocabularyService(db).get_word(word_id)
        if word is not None:
            approved = word.approved
            message = (
                f"<b>{html.escape(word.german)}</b> - {html.escape(word.english)}\n\n"
                f"Approved: {'yes' if approved else 'no'}\n"
                f"Difficulty: {Difficulty(word.difficulty).label}\n"
                f"Correct / incorrect: {word.times_correct} / {word.times_incorrect}\n"
                f"Source: {html.escape(word.source or '-')}"
            )
    finally:
        db.close()

    if word is None:
        await reply(update, ERR_MSG_NO_WORD, words_back_keyboard(context))
        return MAIN_MENU

    keyboard = [
        [InlineKeyboardButton("🚫 Unapprove" if approved else "✅ Approve", callback_data=f"admin_approve_{word_id}"),
         InlineKeyboardButton("✏️ Edit", callback_data=f"admin_edit_{word_id}"),
         InlineKeyboardButton("🗑️ Delete", callback_data=f"admin_remove_{word_id}")],
    ]
    keyboard.extend(words_back_keyboard(context))
    if note:
        message = f"{note}\n\n{message}"
    await reply(update, message, keyboard)
    return MAIN_MENU


async def handle_admin_input(update: Update, context: CallbackContext) -> int:
    """Handle text an admin typed for a search or an edit."""
    await log_received(update, "admin")

    if not is_admin(update.effective_user.id):
        await reply(update, ERR_MSG_NOT_ADMIN, KB_BACK_TO_MENU)
        return MAIN_MENU

    text = (update.message.text or "").strip()
    mode = context.user_data.pop("admin_input", None)

    if mode == "search":
        context.user_data["admin_search"] = text
        return await show_word_list(update, context, 1)

    word_id = context.user_data.get("admin_word_id")
    if mode == "edit" and word_id is not None:
        pairs = parse_word_lines(text)
        if len(pairs) != 1:
            context.user_data["admin_input"] = "edit"
            await reply(update, "Send exactly one line as <code>german - english</code>.", KB_BACK_TO_MENU)
            return ADMIN_INPUT

        german, english = pairs[0]
        db = SessionLocal()
        try:
            VocabularyService(db).update_word(word_id, german, english)
        except ValueError:
            await reply(update, ERR_MSG_NO_WORD, words_back_keyboard(context))
            return MAIN_MENU
        finally:
            db.close()
        context.user_data.pop("admin_word_id", None)
        return await show_word_detail(update, context, word_id, note="✏️ Word updated.")

    return await show_admin_menu(update, context)


async def handle_add_words(update: Update, context: CallbackContext) -> int:
    """Add the words an admin typed."""
    await log_received(update, "add")

    if not is_admin(update.effective_user.id):
        await reply(update, ERR_MSG_NOT_ADMIN, KB_BACK_TO_MENU)
        return MAIN_MENU

    text = update.message.text or ""
    source = None
    first_line, _, rest = text.partition("\n")
    if first_line.lower().startswith("source:"):
        source = first_line[len("source:"):].strip() or None
        text = rest

    pairs = parse_word_lines(text)
    if not pairs:
        await reply(update, "No <code>german - english</code> lines found, try again.", KB_BACK_TO_MENU)
        return ADDING_WORDS

    db = SessionLocal()
    try:
        added = VocabularyService(db).add_words(pairs, source=source)
        added_count = len(added)
    finally:
        db.close()
    monitoring.words_added.inc(added_count)

    skipped = len(pairs) - added_count
    message = f"Added {added_count} words."
    if skipped:
        message += f" Skipped {skipped} duplicates."
    await reply(update, message, KB_BACK_TO_MENU)
    return MAIN_MENU
