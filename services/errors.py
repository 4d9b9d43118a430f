"""
Ошибки операций бронирования.

Текст исключения показывается пользователю как есть, поэтому у каждого
класса есть сообщение по умолчанию.
"""


class BookingError(Exception):
    """Базовое исключение для ошибок операции бронирования"""
    message = "Не удалось выполнить операцию с бронированием"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


# Ошибки ввода: проверяются до обращения к БД

class NameTooShort(BookingError):
    message = "Имя должно содержать минимум 2 символа"


class InvalidPhone(BookingError):
    message = "Номер телефона должен содержать 9-10 цифр"


class InvalidDate(BookingError):
    message = "Некорректная дата бронирования"


class SlotNotSelected(BookingError):
    message = "Выберите время начала из доступных слотов"


class InvalidDuration(BookingError):
    message = "Недопустимая длительность бронирования"


# Конфликты с текущим состоянием: можно повторить с другим временем

class RateLimitExceeded(BookingError):
    message = "Можно сделать не больше 5 бронирований в день. Обратитесь к администратору"


class SlotConflict(BookingError):
    message = "Это время уже занято, выберите другое"


# Ошибки хранилища и состояния

class PersistenceUnavailable(BookingError):
    message = "База данных недоступна, попробуйте ещё раз"


class TableNotFound(BookingError):
    message = "Стол не найден"


class BookingNotFound(BookingError):
    message = "Бронирование не найдено"


class InvalidStatusTransition(BookingError):
    message = "Нельзя изменить статус этого бронирования"
