"""Telegram bot front end of the deck."""
import asyncio
import html
import logging
import time
from typing import Callable, List, Optional, Set, Tuple

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest, TelegramError
from telegram.ext import Application, CallbackContext

from hskdeck import monitoring
from hskdeck.config import settings
from hskdeck.errors import InvalidInputError, WordNotFoundError
from hskdeck.models.session_models import GameMode, QuizQuestion
from hskdeck.services.advance_scheduler import AdvanceScheduler
from hskdeck.services.audio_service import AudioService
from hskdeck.services.session_service import SessionService
from hskdeck.services.vocabulary_loader import VocabularyLoader

# Get logger for this module
logger = logging.getLogger(__name__)

# Keys of the shared components in application.bot_data
SESSION_KEY = "session"
LOADER_KEY = "loader"
AUDIO_KEY = "audio"
SCHEDULER_KEY = "scheduler"
CHAT_ID_KEY = "chat_id"
SPEECH_TASKS_KEY = "speech_tasks"

# Button texts
MENU = "🏠 Menu"
FLASHCARDS = "🃏 Flashcards"
RETRY_MISTAKES = "🔁 Retry Mistakes"
RETRY_LOAD = "🔄 Retry"
PREVIOUS = "⬅️ Prev"
NEXT = "Next ➡️"
FLIP = "🔄 Flip"
PRONOUNCE = "🔊 Pronounce"
EXAMPLE = "💬 Example"

THEME_MARKERS = {True: "🌙", False: "☀️"}
SUMMARY_SPEAK_LIMIT = 40

ERR_MSG_NOT_ALLOWED = "Sorry, this deck is private."
MSG_LOADING_FAILED = "⚠️ Could not load the vocabulary.\n\n<i>{error}</i>"


def msg_back_to(text: str) -> str: return f"🔙 {text}"


def get_session(context: CallbackContext) -> SessionService:
    return context.application.bot_data[SESSION_KEY]


def get_scheduler(context: CallbackContext) -> AdvanceScheduler:
    return context.application.bot_data[SCHEDULER_KEY]


def is_allowed(update: Update) -> bool:
    """Check the user against TELEGRAM_ALLOWED_USER_IDS (open when unset)."""
    allowed = settings.bot.allowed_user_ids
    return not allowed or update.effective_user.id in allowed


async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if update.callback_query:
        txt = f" {update.callback_query.data}"
    elif update.message:
        txt = f" {update.message.text}"
    logger.info(f"Received @{context_type:8} from user {update.effective_user.username} ({update.effective_user.id}){txt}")


def make_speaker(application: Application) -> Callable[[str], None]:
    """Build the fire-and-forget `speak` collaborator of the session."""
    tasks: Set[asyncio.Task] = application.bot_data.setdefault(SPEECH_TASKS_KEY, set())

    def forget(task: asyncio.Task) -> None:
        tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Pronunciation task failed: {task.exception()}")

    def speak(text: str) -> None:
        chat_id = application.bot_data.get(CHAT_ID_KEY)
        if chat_id is None:
            return
        task = asyncio.create_task(send_pronunciation(application, chat_id, text))
        tasks.add(task)
        task.add_done_callback(forget)

    return speak


async def send_pronunciation(application: Application, chat_id: int, text: str) -> None:
    """Generate the pronunciation off the event loop and send it as a voice message."""
    audio: AudioService = application.bot_data[AUDIO_KEY]
    path = await asyncio.to_thread(audio.pronounce, text)
    if path is None:
        return
    try:
        with open(path, "rb") as voice:
            await application.bot.send_voice(chat_id=chat_id, voice=voice)
    except (OSError, TelegramError) as e:
        logger.error(f"Failed to send pronunciation of {text}: {e}")


def ensure_vocabulary(context: CallbackContext) -> Optional[str]:
    """Load the vocabulary when missing. Returns the load error, if any."""
    session = get_session(context)
    if session.vocabulary:
        return None
    loader: VocabularyLoader = context.application.bot_data[LOADER_KEY]
    try:
        loader.load_into(session)
    except InvalidInputError as e:
        return str(e)
    return None


def quiz_sizes(pool_size: int) -> List[int]:
    """Quiz sizes offered in the menu for a pool of the given size."""
    sizes = [size for size in settings.quiz.size_options if size < pool_size]
    sizes.append(pool_size)
    return sizes


def render_load_error(error: str) -> Tuple[str, InlineKeyboardMarkup]:
    keyboard = [[InlineKeyboardButton(RETRY_LOAD, callback_data="retry_load")]]
    return MSG_LOADING_FAILED.format(error=html.escape(error)), InlineKeyboardMarkup(keyboard)


def render_menu(session: SessionService) -> Tuple[str, InlineKeyboardMarkup]:
    store = session.store
    pool_size = len(session.vocabulary)
    keyboard = [
        [InlineKeyboardButton(f"🧠 Quiz {size}" if size < pool_size else f"🧠 Quiz all ({size})",
                              callback_data=f"quiz_{size}")
         for size in quiz_sizes(pool_size)],
        [InlineKeyboardButton(FLASHCARDS, callback_data="flashcards")],
        [InlineKeyboardButton(f"🔊 Audio: {'on' if store.audio_enabled else 'off'}", callback_data="toggle_audio"),
         InlineKeyboardButton(f"{THEME_MARKERS[store.dark_mode]} Theme", callback_data="toggle_theme")],
    ]
    message = (f"{THEME_MARKERS[store.dark_mode]} <b>HSK Deck</b>\n\n"
               f"📚 {pool_size} words loaded\n"
               f"🏆 Last score: {session.state.score} | 🔥 Streak: {session.state.streak}\n\n"
               "What would you like to do?")
    return message, InlineKeyboardMarkup(keyboard)


def render_quiz(session: SessionService, question: QuizQuestion) -> Tuple[str, InlineKeyboardMarkup]:
    state = session.state
    word = question.word
    max_length = settings.quiz.option_max_length
    keyboard = []
    for option in question.options:
        label = option.short_meaning(max_length)
        if state.show_result is not None:
            if option.id == word.id:
                label = f"✅ {label}"
            elif state.show_result is False:
                label = f"▫️ {label}"
        keyboard.append([InlineKeyboardButton(label, callback_data=f"answer_{option.id}")])
    keyboard.append([InlineKeyboardButton(msg_back_to(MENU), callback_data="menu")])

    message = (f"SCORE: {state.score} | STREAK: {state.streak}x"
               f"    {state.position + 1} / {len(state.deck)}\n\n"
               f"<b>{html.escape(word.front)}</b>\n\n")
    if state.show_result is None:
        message += "Select meaning"
    elif state.show_result:
        message += f"✅ Correct! <i>{html.escape(word.back.hanzi_pinyin)}</i>"
    else:
        message += f"❌ Wrong: {html.escape(word.short_meaning(max_length))}"
    return message, InlineKeyboardMarkup(keyboard)


def render_flashcard(session: SessionService) -> Tuple[str, InlineKeyboardMarkup]:
    state = session.state
    word = state.current_card
    message = f"{state.position + 1} / {len(state.deck)}\n\n<b>{html.escape(word.front)}</b>\n"
    if state.flipped:
        back = word.back
        message += f"\n<i>{html.escape(back.hanzi_pinyin)}</i> · {html.escape(back.part_of_speech or 'word')}\n"
        message += f"\n{html.escape(back.meaning)}\n"
        if back.measure_word:
            message += f"\nMeasure word: {html.escape(back.measure_word)}\n"
        example = back.parsed_example
        if example:
            message += f"\n💬 {html.escape(example.render(word.front))}\n<i>{html.escape(example.transcription)}</i>\n"
    else:
        message += "\nTap flip to see the answer"

    keyboard = [
        [InlineKeyboardButton(PREVIOUS, callback_data="fc_prev"),
         InlineKeyboardButton(FLIP, callback_data="fc_flip"),
         InlineKeyboardButton(NEXT, callback_data="fc_next")],
        [InlineKeyboardButton(PRONOUNCE, callback_data="speak")],
        [InlineKeyboardButton(msg_back_to(MENU), callback_data="menu")],
    ]
    if state.flipped and word.back.example:
        keyboard[1].append(InlineKeyboardButton(EXAMPLE, callback_data="speak_example"))
    return message, InlineKeyboardMarkup(keyboard)


def render_summary(session: SessionService) -> Tuple[str, InlineKeyboardMarkup]:
    state = session.state
    lines = [f"🏆 <b>Score: {state.score}</b>",
             f"Review sheet: {session.correct_count} / {len(state.log)} correct", ""]
    for entry in state.log:
        mark = "✅" if entry.is_correct else "❌"
        lines.append(f"{mark} {html.escape(entry.word.front)} - {html.escape(entry.word.short_meaning())}")

    keyboard = []
    # Telegram rejects oversized inline keyboards
    words = list({entry.word.id: entry.word for entry in state.log}.values())[:SUMMARY_SPEAK_LIMIT]
    for start in range(0, len(words), 4):
        keyboard.append([InlineKeyboardButton(f"🔊 {word.front}", callback_data=f"speak_{word.id}")
                         for word in words[start:start + 4]])
    keyboard.append([InlineKeyboardButton(msg_back_to(MENU), callback_data="menu")])
    if session.wrong_count:
        keyboard[-1].append(InlineKeyboardButton(f"{RETRY_MISTAKES} ({session.wrong_count})", callback_data="review"))
    return "\n".join(lines), InlineKeyboardMarkup(keyboard)


def render(session: SessionService) -> Tuple[str, InlineKeyboardMarkup]:
    """Render the screen of the current mode."""
    mode = session.mode
    if mode is GameMode.QUIZ:
        return render_quiz(session, session.current_question())
    if mode is GameMode.FLASHCARDS:
        return render_flashcard(session)
    if mode is GameMode.SUMMARY:
        return render_summary(session)
    return render_menu(session)


async def show(update: Update, message: str, reply_markup: InlineKeyboardMarkup) -> None:
    """Edit the message behind a callback, or reply to a command."""
    if update.callback_query:
        try:
            await update.callback_query.edit_message_text(message, reply_markup=reply_markup, parse_mode="HTML")
        except BadRequest as e:
            # Telegram refuses edits that change nothing
            if "not modified" not in str(e).lower():
                raise
    else:
        await update.message.reply_text(message, reply_markup=reply_markup, parse_mode="HTML")


async def handle_start(update: Update, context: CallbackContext) -> None:
    """Load the vocabulary if needed and show the main menu."""
    await log_received(update, "start")
    if not is_allowed(update):
        await update.message.reply_text(ERR_MSG_NOT_ALLOWED)
        return

    context.application.bot_data[CHAT_ID_KEY] = update.effective_chat.id
    error = ensure_vocabulary(context)
    if error:
        await show(update, *render_load_error(error))
        return

    session = get_session(context)
    session.set_mode(GameMode.MENU)
    await show(update, *render_menu(session))


async def handle_answer(update: Update, context: CallbackContext, option_id: int) -> None:
    """Grade a quiz answer and schedule the move to the next card."""
    session = get_session(context)
    outcome = session.answer(option_id)
    if outcome is None:
        await update.callback_query.answer()
        return

    await update.callback_query.answer("✅" if outcome.is_correct else "❌")
    await show(update, *render(session))

    message = update.callback_query.message

    async def advance(generation: int, position: int) -> None:
        if session.advance_quiz(generation, position):
            text, reply_markup = render(session)
            try:
                await message.edit_text(text, reply_markup=reply_markup, parse_mode="HTML")
            except TelegramError as e:
                logger.error(f"Failed to show the next card: {e}")

    get_scheduler(context).schedule(outcome.generation, outcome.position, advance)


async def handle_callback(update: Update, context: CallbackContext) -> None:
    """Dispatch button presses to the session."""
    await log_received(update, "callback")
    query = update.callback_query
    if not is_allowed(update):
        await query.answer(text=ERR_MSG_NOT_ALLOWED, show_alert=True)
        return

    started = time.perf_counter()
    context.application.bot_data[CHAT_ID_KEY] = update.effective_chat.id
    data = query.data or ""
    action = data.split("_", 1)[0]
    try:
        if data == "retry_load":
            error = ensure_vocabulary(context)
            await query.answer()
            if error:
                await show(update, *render_load_error(error))
                return
            await show(update, *render_menu(get_session(context)))
            return

        error = ensure_vocabulary(context)
        if error:
            await query.answer()
            await show(update, *render_load_error(error))
            return

        session = get_session(context)
        if action == "answer":
            await handle_answer(update, context, int(data.split("_", 1)[1]))
            return

        if action == "quiz":
            session.start_quiz(int(data.split("_", 1)[1]))
        elif data == "flashcards":
            session.start_flashcards()
        elif data == "review":
            if not session.start_weakness_review():
                await query.answer(text="Nothing to review 🎉", show_alert=True)
                return
        elif data == "fc_next":
            session.next_flashcard()
        elif data == "fc_prev":
            session.previous_flashcard()
        elif data == "fc_flip":
            session.flip_flashcard()
        elif data == "speak":
            session.speak_current()
        elif data == "speak_example":
            session.speak_example()
        elif action == "speak":
            session.speak_word(int(data.split("_", 1)[1]))
        elif data == "toggle_audio":
            session.toggle_audio()
        elif data == "toggle_theme":
            session.toggle_theme()
        elif data == "menu":
            session.set_mode(GameMode.MENU)
        else:
            logger.warning(f"Unknown callback data: {data}")

        await query.answer()
        await show(update, *render(session))
    except (ValueError, WordNotFoundError, TelegramError) as e:
        logger.error(f"Error handling callback {data}: {e}")
        monitoring.error_count.labels(error_type=type(e).__name__).inc()
    finally:
        monitoring.request_duration.labels(handler=action or "unknown").observe(time.perf_counter() - started)
