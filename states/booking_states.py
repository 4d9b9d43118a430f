"""
Состояния для FSM (Finite State Machine)
"""
from aiogram.fsm.state import State, StatesGroup


class BookingStates(StatesGroup):
    """Состояния процесса бронирования"""
    choosing_date = State()
    choosing_time = State()
    choosing_duration = State()
    entering_name = State()
    entering_phone = State()
    attaching_slip = State()
    confirming = State()


class LookupStates(StatesGroup):
    """Поиск своих бронирований по телефону"""
    entering_phone = State()
