from aiogram.fsm.state import State, StatesGroup

class WizardFSM(StatesGroup):
    answering_text = State()  # Ввод текста/телефона (data['question_id'])
    uploading_file = State()  # Загрузка файла/изображения (data['question_id'])
    typing_assessment = State()  # Ответ на экран language-typing (data['screen_id'])
    leaving_feedback = State()  # Комментарий к оценке (data['rating'])

class AuthoringFSM(StatesGroup):
    """FSM состояния для правки флоу администраторами."""
    uploading_logo = State()  # data['flow_id']
