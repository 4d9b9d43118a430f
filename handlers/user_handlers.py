"""
Обработчики команд и сообщений клиентов
"""
import logging

from aiogram import Router, F
from aiogram.filters import Command
from aiogram.types import Message, CallbackQuery, ReplyKeyboardRemove
from aiogram.fsm.context import FSMContext

from config import settings
from database.repository import BookingRepository, SettingsRepository, TableRepository
from services.availability import get_table_slots
from services.booking_service import (
    BookingRequest, cancel_booking as cancel_booking_service, create_booking,
    find_bookings_by_phone, normalize_phone
)
from services.errors import BookingError, SlotConflict, SlotNotSelected
from services.reconciler import refresh_tables
from states.booking_states import BookingStates, LookupStates
from keyboards.keyboards import (
    get_main_menu_keyboard, get_tables_keyboard, get_dates_keyboard, get_times_keyboard,
    get_duration_keyboard, get_phone_keyboard, get_slip_keyboard, get_confirmation_keyboard,
    get_bookings_keyboard, get_booking_actions_keyboard, hours_label
)
from utils.messages import booking_text, notify_admins, table_text
from utils.time_utils import add_hours, format_date, format_price, get_available_dates

logger = logging.getLogger(__name__)
router = Router()


def main_menu(user_id: int):
    return get_main_menu_keyboard(settings.is_admin(user_id))


@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext):
    """Обработка команды /start"""
    await state.clear()

    await message.answer(
        f"👋 Добро пожаловать в снукер-клуб!\n\n"
        f"Здесь вы можете:\n"
        f"🎱 Посмотреть свободные столы\n"
        f"📅 Забронировать стол на удобное время\n"
        f"📋 Проверить или отменить бронирование\n\n"
        f"Выберите действие:",
        reply_markup=main_menu(message.from_user.id)
    )


@router.message(F.text == "🎱 Столы")
async def show_tables(message: Message, state: FSMContext):
    """Список столов со свободными слотами на сегодня"""
    await state.clear()

    board = await refresh_tables()
    if not board.tables:
        await message.answer("Столы пока не добавлены")
        return

    text = "🎱 Столы сегодня:\n\n" + "\n\n".join(table_text(view) for view in board.tables)
    await message.answer(text, reply_markup=get_tables_keyboard(board.tables))


@router.message(F.text == "📅 Забронировать стол")
async def start_booking(message: Message, state: FSMContext):
    """Начало процесса бронирования"""
    await state.clear()

    board = await refresh_tables()
    await message.answer(
        "🎱 Выберите стол:",
        reply_markup=get_tables_keyboard(board.tables)
    )


@router.callback_query(F.data.startswith("table:"))
async def process_table(callback: CallbackQuery, state: FSMContext):
    """Обработка выбора стола"""
    table_id = int(callback.data.split(":")[1])
    table = TableRepository.get_table_by_id(table_id)

    if not table:
        await callback.answer("Стол не найден", show_alert=True)
        return

    await state.update_data(table_id=table.id, table_name=table.name)

    await callback.message.edit_text(
        f"🎱 {table.name}\n\n📅 Выберите дату:",
        reply_markup=get_dates_keyboard(get_available_dates())
    )
    await state.set_state(BookingStates.choosing_date)
    await callback.answer()


@router.callback_query(F.data.startswith("date:"), BookingStates.choosing_date)
async def process_date(callback: CallbackQuery, state: FSMContext):
    """Обработка выбора даты"""
    date_str = callback.data.split(":")[1]
    data = await state.get_data()

    times = get_table_slots(data['table_id'], date_str)
    logger.info(f"Доступные слоты стола {data['table_id']} на {date_str}: {len(times)} шт.")

    if not times:
        await callback.answer("На эту дату нет свободных слотов", show_alert=True)
        return

    await state.update_data(date=date_str)
    await callback.message.edit_text(
        f"🎱 {data['table_name']}, {format_date(date_str)}\n\n🕐 Выберите время начала:",
        reply_markup=get_times_keyboard(times)
    )
    await state.set_state(BookingStates.choosing_time)
    await callback.answer()


@router.callback_query(F.data.startswith("time:"), BookingStates.choosing_time)
async def process_time(callback: CallbackQuery, state: FSMContext):
    """Обработка выбора времени"""
    start_time = callback.data.split(":", 1)[1]
    await state.update_data(start_time=start_time)

    await callback.message.edit_text(
        f"🕐 Начало в {start_time}\n\n⏱ Выберите длительность:",
        reply_markup=get_duration_keyboard()
    )
    await state.set_state(BookingStates.choosing_duration)
    await callback.answer()


@router.callback_query(F.data.startswith("duration:"), BookingStates.choosing_duration)
async def process_duration(callback: CallbackQuery, state: FSMContext):
    """Обработка выбора длительности"""
    duration = int(callback.data.split(":")[1])
    await state.update_data(duration=duration)

    await callback.message.edit_text("👤 Введите ваше имя:")
    await state.set_state(BookingStates.entering_name)
    await callback.answer()


@router.message(BookingStates.entering_name, F.text)
async def process_name(message: Message, state: FSMContext):
    """Обработка имени"""
    name = message.text.strip()
    if len(name) < 2:
        await message.answer("⚠️ Имя должно содержать минимум 2 символа")
        return

    await state.update_data(customer_name=name)
    await message.answer(
        "📱 Отправьте контактный телефон кнопкой ниже или введите номер вручную:",
        reply_markup=get_phone_keyboard()
    )
    await state.set_state(BookingStates.entering_phone)


@router.message(BookingStates.entering_phone, F.contact)
async def process_contact(message: Message, state: FSMContext):
    """Обработка контакта"""
    await process_phone_number(message, state, message.contact.phone_number)


@router.message(BookingStates.entering_phone, F.text)
async def process_phone_text(message: Message, state: FSMContext):
    """Обработка текстового ввода телефона"""
    await process_phone_number(message, state, message.text.strip())


async def process_phone_number(message: Message, state: FSMContext, phone: str):
    """Общая обработка номера телефона"""
    if not 9 <= len(normalize_phone(phone)) <= 10:
        await message.answer("⚠️ Номер телефона должен содержать 9-10 цифр")
        return

    await state.update_data(customer_phone=phone)

    shop = SettingsRepository.get_settings()
    text = (
        "🧾 Если хотите оплатить заранее, переведите оплату и пришлите фото чека.\n"
        "Или оплатите на месте."
    )
    await message.answer("Телефон сохранён", reply_markup=ReplyKeyboardRemove())
    if shop and shop.payment_qr_url:
        await message.answer_photo(shop.payment_qr_url, caption=text, reply_markup=get_slip_keyboard())
    else:
        await message.answer(text, reply_markup=get_slip_keyboard())
    await state.set_state(BookingStates.attaching_slip)


@router.message(BookingStates.attaching_slip, F.photo)
async def process_slip(message: Message, state: FSMContext):
    """Фото чека сохраняется как ссылка на файл Telegram"""
    await state.update_data(slip_url=message.photo[-1].file_id)
    await show_confirmation(message, state)


@router.callback_query(F.data == "skip_slip", BookingStates.attaching_slip)
async def skip_slip(callback: CallbackQuery, state: FSMContext):
    """Оплата в клубе"""
    await state.update_data(slip_url=None)
    await show_confirmation(callback.message, state)
    await callback.answer()


async def show_confirmation(message: Message, state: FSMContext):
    """Формирование подтверждения"""
    data = await state.get_data()
    table = TableRepository.get_table_by_id(data['table_id'])
    shop = SettingsRepository.get_settings()
    price = shop.price_for(table.type) * data['duration'] if table and shop else 0

    await message.answer(
        f"✅ Подтверждение бронирования:\n\n"
        f"🎱 Стол: {data['table_name']}\n"
        f"📅 {format_date(data['date'])} "
        f"{data['start_time']}–{add_hours(data['start_time'], data['duration'])}\n"
        f"⏱ Длительность: {hours_label(data['duration'])}\n"
        f"💰 Стоимость: {format_price(price)}\n"
        f"👤 {data['customer_name']}\n"
        f"📱 {data['customer_phone']}\n"
        f"🧾 {'Чек приложен' if data.get('slip_url') else 'Оплата в клубе'}\n\n"
        f"Подтвердите бронирование:",
        reply_markup=get_confirmation_keyboard()
    )
    await state.set_state(BookingStates.confirming)


@router.callback_query(F.data == "confirm_booking", BookingStates.confirming)
async def confirm_booking(callback: CallbackQuery, state: FSMContext):
    """Подтверждение и создание бронирования"""
    data = await state.get_data()

    request = BookingRequest(
        table_id=data['table_id'],
        customer_name=data['customer_name'],
        customer_phone=data['customer_phone'],
        date=data['date'],
        start_time=data['start_time'],
        duration_hours=data['duration'],
        slip_url=data.get('slip_url')
    )

    try:
        booking = create_booking(request)
    except (SlotConflict, SlotNotSelected) as e:
        # Время заняли, пока клиент заполнял форму: предлагаем выбрать заново
        times = get_table_slots(data['table_id'], data['date'])
        await callback.message.edit_text(
            f"⚠️ {e}",
            reply_markup=get_times_keyboard(times) if times else None
        )
        await state.set_state(BookingStates.choosing_time if times else None)
        await callback.answer()
        return
    except BookingError as e:
        await callback.message.edit_text(f"⚠️ {e}")
        await callback.message.answer("Выберите действие:", reply_markup=main_menu(callback.from_user.id))
        await state.clear()
        await callback.answer()
        return

    await notify_admins(callback.bot, f"📌 Новое бронирование\n\n{booking_text(booking)}")

    await callback.message.edit_text(
        f"✅ Бронирование успешно создано!\n\n{booking_text(booking)}\n\n"
        f"Пожалуйста, приходите вовремя: бронь без подтверждения снимается "
        f"после опоздания. Ждём вас! 🎱"
    )
    await callback.message.answer(
        "Выберите действие:",
        reply_markup=main_menu(callback.from_user.id)
    )

    await state.clear()
    await callback.answer()


@router.message(F.text == "📋 Мои бронирования")
async def my_bookings(message: Message, state: FSMContext):
    """Поиск бронирований по телефону"""
    await state.clear()
    await message.answer(
        "📱 Введите номер телефона, указанный при бронировании:",
        reply_markup=get_phone_keyboard()
    )
    await state.set_state(LookupStates.entering_phone)


@router.message(LookupStates.entering_phone, F.contact | F.text)
async def lookup_bookings(message: Message, state: FSMContext):
    """Список бронирований клиента"""
    raw_phone = message.contact.phone_number if message.contact else message.text
    phone = normalize_phone(raw_phone)

    # Телефон запоминается, чтобы открывать только свои брони
    await state.set_state(None)
    await state.update_data(lookup_phone=phone)

    await send_bookings_list(message, phone)


async def send_bookings_list(message: Message, phone: str, edit: bool = False):
    bookings = find_bookings_by_phone(phone)[:10]

    if not bookings:
        await message.answer(
            "Бронирований на этот номер не найдено.",
            reply_markup=main_menu(message.chat.id)
        )
        return

    if edit:
        await message.edit_text("📋 Ваши бронирования:", reply_markup=get_bookings_keyboard(bookings))
    else:
        await message.answer("Найдены бронирования", reply_markup=ReplyKeyboardRemove())
        await message.answer("📋 Ваши бронирования:", reply_markup=get_bookings_keyboard(bookings))


@router.callback_query(F.data.startswith("show_booking:"))
async def show_booking_details(callback: CallbackQuery, state: FSMContext):
    """Показать детали бронирования"""
    booking_id = int(callback.data.split(":")[1])
    booking = BookingRepository.get_booking_by_id(booking_id)
    data = await state.get_data()

    if not booking or booking.customer_phone != data.get('lookup_phone'):
        await callback.answer("Бронирование не найдено", show_alert=True)
        return

    await callback.message.edit_text(
        booking_text(booking),
        reply_markup=get_booking_actions_keyboard(booking)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("cancel_booking:"))
async def cancel_booking(callback: CallbackQuery, state: FSMContext):
    """Отмена бронирования клиентом"""
    booking_id = int(callback.data.split(":")[1])
    booking = BookingRepository.get_booking_by_id(booking_id)
    data = await state.get_data()

    if not booking or booking.customer_phone != data.get('lookup_phone'):
        await callback.answer("Бронирование не найдено", show_alert=True)
        return

    try:
        booking = cancel_booking_service(booking_id)
    except BookingError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await notify_admins(callback.bot, f"❌ Бронирование отменено клиентом\n\n{booking_text(booking)}")

    await callback.message.edit_text("✅ Бронирование успешно отменено")
    await callback.answer()


@router.callback_query(F.data == "my_bookings")
async def callback_my_bookings(callback: CallbackQuery, state: FSMContext):
    """Возврат к списку бронирований"""
    data = await state.get_data()
    if not data.get('lookup_phone'):
        await callback.answer("Введите телефон заново", show_alert=True)
        return

    await send_bookings_list(callback.message, data['lookup_phone'], edit=True)
    await callback.answer()


# Навигация назад
@router.callback_query(F.data == "back_to_table")
async def back_to_table(callback: CallbackQuery, state: FSMContext):
    """Возврат к выбору стола"""
    board = await refresh_tables()
    await callback.message.edit_text(
        "🎱 Выберите стол:",
        reply_markup=get_tables_keyboard(board.tables)
    )
    await state.set_state(None)
    await callback.answer()


@router.callback_query(F.data == "back_to_date")
async def back_to_date(callback: CallbackQuery, state: FSMContext):
    """Возврат к выбору даты"""
    await callback.message.edit_text(
        "📅 Выберите дату:",
        reply_markup=get_dates_keyboard(get_available_dates())
    )
    await state.set_state(BookingStates.choosing_date)
    await callback.answer()


@router.callback_query(F.data == "back_to_time")
async def back_to_time(callback: CallbackQuery, state: FSMContext):
    """Возврат к выбору времени"""
    data = await state.get_data()
    times = get_table_slots(data['table_id'], data['date'])

    if not times:
        await callback.answer("На эту дату нет свободных слотов", show_alert=True)
        return

    await callback.message.edit_text(
        "🕐 Выберите время начала:",
        reply_markup=get_times_keyboard(times)
    )
    await state.set_state(BookingStates.choosing_time)
    await callback.answer()


@router.callback_query(F.data == "main_menu")
async def callback_main_menu(callback: CallbackQuery, state: FSMContext):
    """Возврат в главное меню"""
    await state.clear()

    await callback.message.answer(
        "🏠 Главное меню",
        reply_markup=main_menu(callback.from_user.id)
    )
    await callback.answer()


@router.callback_query(F.data == "cancel")
async def cancel_booking_process(callback: CallbackQuery, state: FSMContext):
    """Отмена процесса бронирования"""
    await state.clear()

    # Сообщение может быть фото с QR-кодом, поэтому не редактируем его
    await callback.message.answer(
        "❌ Бронирование отменено",
        reply_markup=main_menu(callback.from_user.id)
    )
    await callback.answer()
