"""
Score entry, ranking and deletion for gradings.
"""
from collections import defaultdict

from flask import abort

from hallmark import db
from hallmark.models.grading import (
    Grading, ReportCard, StudentAssessment, StudentGrade, StudentTrait,
)
from hallmark.models.student import Student
from hallmark.models.subject import Subject

GRADE_BANDS = (
    (70, 'A', 'Excellent'),
    (60, 'B', 'Very good'),
    (50, 'C', 'Good'),
    (45, 'D', 'Fair'),
    (40, 'E', 'Pass'),
    (0, 'F', 'Fail'),
)


def letter_grade(score, max_score=100):
    percent = (score / max_score * 100) if max_score else 0
    for floor, grade, remark in GRADE_BANDS:
        if percent >= floor:
            return grade, remark
    return 'F', 'Fail'


def rank(values):
    """Competition ranking (1, 2, 2, 4) of ``{key: score}``, highest first."""
    ordered = sorted(values.items(), key=lambda item: item[1], reverse=True)
    positions, previous, position = {}, None, 0
    for index, (key, score) in enumerate(ordered, start=1):
        if score != previous:
            position, previous = index, score
        positions[key] = position
    return positions


def record_scores(grading, entries):
    """Upsert assessment scores and traits, then recompute grades and report cards.

    Returns the ids of the classes whose results were touched.
    """
    policy = grading.policy
    assessments = {a.id: a for a in policy.assessments} if policy else {}
    traits = {t.id: t for t in policy.traits} if policy else {}
    max_score = policy.max_score if policy else 100
    touched_classes = set()

    for entry in entries:
        student = db.session.get(Student, entry.student_id)
        if not student or student.school_id != grading.school_id:
            abort(400, description=f'Student {entry.student_id} is not in this school')
        subject = db.session.get(Subject, entry.subject_id)
        if not subject or subject.school_id != grading.school_id:
            abort(400, description=f'Subject {entry.subject_id} is not in this school')

        total = 0.0
        for item in entry.assessments:
            assessment = assessments.get(item.assessment_id)
            if assessment is None:
                abort(400, description=f'Assessment {item.assessment_id} is not part of this grading policy')
            if item.score > assessment.max_score:
                abort(400, description=f'Score for {assessment.name} exceeds {assessment.max_score}')
            row = StudentAssessment.query.filter_by(
                student_id=student.id, assessment_id=assessment.id, subject_id=subject.id,
                class_id=student.class_id, grading_id=grading.id).first()
            if row is None:
                row = StudentAssessment(student_id=student.id, assessment_id=assessment.id, subject_id=subject.id,
                                        class_id=student.class_id, grading_id=grading.id, score=item.score)
                db.session.add(row)
            else:
                row.score = item.score
        db.session.flush()

        for row in StudentAssessment.query.filter_by(student_id=student.id, subject_id=subject.id,
                                                     class_id=student.class_id, grading_id=grading.id):
            total += row.score

        grade, remark = letter_grade(total, max_score)
        student_grade = StudentGrade.query.filter_by(student_id=student.id, grading_id=grading.id,
                                                     subject_id=subject.id, class_id=student.class_id).first()
        if student_grade is None:
            student_grade = StudentGrade(student_id=student.id, grading_id=grading.id,
                                         subject_id=subject.id, class_id=student.class_id)
            db.session.add(student_grade)
        student_grade.score = total
        student_grade.grade = grade
        student_grade.remark = entry.remark or remark

        for item in entry.traits:
            if item.trait_id not in traits:
                abort(400, description=f'Trait {item.trait_id} is not part of this grading policy')
            row = StudentTrait.query.filter_by(student_id=student.id, trait_id=item.trait_id,
                                               grading_id=grading.id).first()
            if row is None:
                row = StudentTrait(student_id=student.id, trait_id=item.trait_id, grading_id=grading.id)
                db.session.add(row)
            row.score = item.score
            row.remark = item.remark

        touched_classes.add(student.class_id)

    db.session.flush()
    for class_id in touched_classes:
        rebuild_class_results(grading, class_id)
    return sorted(touched_classes)


def rebuild_class_results(grading, class_id):
    """Recompute subject positions and report cards for one class."""
    max_score = grading.policy.max_score if grading.policy else 100
    grades = StudentGrade.query.filter_by(grading_id=grading.id, class_id=class_id).all()

    by_subject = defaultdict(dict)
    totals = defaultdict(float)
    counts = defaultdict(int)
    for g in grades:
        by_subject[g.subject_id][g.id] = g.score or 0
        totals[g.student_id] += g.score or 0
        counts[g.student_id] += 1

    lookup = {g.id: g for g in grades}
    for scores in by_subject.values():
        for grade_id, position in rank(scores).items():
            lookup[grade_id].subject_position = position

    averages = {student_id: totals[student_id] / counts[student_id] for student_id in totals}
    positions = rank(averages)
    for student_id, average in averages.items():
        card = ReportCard.query.filter_by(student_id=student_id, grading_id=grading.id, class_id=class_id).first()
        if card is None:
            card = ReportCard(student_id=student_id, grading_id=grading.id, class_id=class_id,
                              school_id=grading.school_id)
            db.session.add(card)
        card.total_score = totals[student_id]
        card.average_score = round(average, 2)
        card.class_position = positions[student_id]
        card.remark = letter_grade(average, max_score)[1]


def delete_gradings(grading_ids):
    """Delete gradings and everything recorded against them.

    Runs inside the caller's transaction and returns per-table counts.
    """
    counts = {}
    for key, model in (('studentAssessments', StudentAssessment),
                       ('studentTraits', StudentTrait),
                       ('reportCards', ReportCard),
                       ('studentGrades', StudentGrade)):
        counts[key] = model.query.filter(model.grading_id.in_(grading_ids)).delete(synchronize_session=False)
    counts['gradings'] = Grading.query.filter(Grading.id.in_(grading_ids)).delete(synchronize_session=False)
    return counts


def purge_student_results(student_ids):
    """Remove a student's grading records before the student is deleted."""
    for model in (StudentAssessment, StudentTrait, ReportCard, StudentGrade):
        model.query.filter(model.student_id.in_(student_ids)).delete(synchronize_session=False)

