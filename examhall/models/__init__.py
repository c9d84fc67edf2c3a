from examhall.models.exam import Exam
from examhall.models.question import Question
from examhall.models.choice import Choice
from examhall.models.exam_attempt import ExamAttempt
from examhall.models.student_answer import StudentAnswer
