from hallmark.models.school import School
from hallmark.models.user import User, ROLES, ADMIN_ROLES
from hallmark.models.teacher import Teacher
from hallmark.models.parent import Parent
from hallmark.models.student import Student
from hallmark.models.school_class import SchoolClass
from hallmark.models.subject import Subject
from hallmark.models.lesson import Lesson, DAYS
from hallmark.models.attendance import Attendance
from hallmark.models.term import Term, TERM_NAMES
from hallmark.models.payment import Payment, PaymentSetup, PAYMENT_STATUSES
from hallmark.models.grading import (
    GradingPolicy, Assessment, Trait, Grading, StudentGrade, StudentAssessment, StudentTrait, ReportCard,
    TRAIT_CATEGORIES,
)
from hallmark.models.academics import Assignment, Submission, ClassTest, Answer, assignment_students
from hallmark.models.notice import Event, Announcement
from hallmark.models.news import News, NEWS_CATEGORIES, NEWS_STATUSES
from hallmark.models.gallery import Gallery, GALLERY_CATEGORIES
from hallmark.models.notification import Notification, NotificationType, NotificationPriority
from hallmark.models.user_activity import UserActivity
