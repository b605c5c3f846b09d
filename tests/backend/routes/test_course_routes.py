from backend.core.config import API_PREFIX
from backend.models.course import Chapter, Course
from backend.models.enrollment import Enrollment
from backend.models.progress import Certificate, ChapterProgress
from backend.models.user import Role


def test_list_courses_is_public(client, make_user, make_course) -> None:
    mentor = make_user(Role.MENTOR)
    course = make_course(mentor, 'Databases')

    response = client.get(f'{API_PREFIX}/courses')

    assert response.status_code == 200
    assert response.json()[0]['id'] == course.id
    assert response.json()[0]['title'] == 'Databases'
    assert response.json()[0]['mentorId'] == mentor.id


def test_get_course_returns_404_for_unknown_course(client) -> None:
    response = client.get(f'{API_PREFIX}/courses/999')

    assert response.status_code == 404
    assert response.json() == {'message': 'Course not found'}


def test_create_course_requires_mentor_role(client, make_user, auth_headers) -> None:
    student = make_user(Role.STUDENT)

    response = client.post(
        f'{API_PREFIX}/courses',
        json={'title': 'Hacking', 'description': 'Nope'},
        headers=auth_headers(student),
    )

    assert response.status_code == 403


def test_create_course_assigns_caller_as_mentor(client, make_user, auth_headers) -> None:
    mentor = make_user(Role.MENTOR)

    response = client.post(
        f'{API_PREFIX}/courses',
        json={'title': ' Algorithms ', 'description': 'Sorting and searching'},
        headers=auth_headers(mentor),
    )

    assert response.status_code == 201
    body = response.json()
    assert body['message'] == 'Course created successfully'
    assert body['course']['title'] == 'Algorithms'
    assert body['course']['mentorId'] == mentor.id


def test_create_course_requires_description(client, make_user, auth_headers) -> None:
    mentor = make_user(Role.MENTOR)

    response = client.post(f'{API_PREFIX}/courses', json={'title': 'Algorithms'}, headers=auth_headers(mentor))

    assert response.status_code == 400


def test_my_courses_only_lists_owned_courses(client, make_user, make_course, auth_headers) -> None:
    mentor = make_user(Role.MENTOR)
    other_mentor = make_user(Role.MENTOR)
    owned = make_course(mentor, 'Owned')
    make_course(other_mentor, 'Not owned')

    response = client.get(f'{API_PREFIX}/my-courses', headers=auth_headers(mentor))

    assert response.status_code == 200
    assert [course['id'] for course in response.json()] == [owned.id]


def test_enrolled_path_is_not_treated_as_course_id(client, make_user, auth_headers) -> None:
    student = make_user(Role.STUDENT)

    response = client.get(f'{API_PREFIX}/courses/enrolled', headers=auth_headers(student))

    assert response.status_code == 200
    assert response.json() == []


def test_delete_course_rejects_non_owner(client, make_user, make_course, auth_headers) -> None:
    owner = make_user(Role.MENTOR)
    intruder = make_user(Role.MENTOR)
    course = make_course(owner)

    response = client.delete(f'{API_PREFIX}/courses/{course.id}', headers=auth_headers(intruder))

    assert response.status_code == 403
    assert response.json() == {'message': 'You are not allowed to delete this course'}


def test_delete_course_returns_404_for_unknown_course(client, make_user, auth_headers) -> None:
    mentor = make_user(Role.MENTOR)

    response = client.delete(f'{API_PREFIX}/courses/12345', headers=auth_headers(mentor))

    assert response.status_code == 404


def test_delete_course_removes_dependents_and_leaves_other_courses(
    client,
    db_session,
    make_user,
    make_course,
    make_chapter,
    enroll,
    auth_headers,
) -> None:
    mentor = make_user(Role.MENTOR, approved=True)
    student = make_user(Role.STUDENT)
    other_student = make_user(Role.STUDENT)
    doomed = make_course(mentor, 'Doomed')
    kept = make_course(mentor, 'Kept')
    doomed_chapter = make_chapter(doomed, 'Doomed 1')
    kept_chapter = make_chapter(kept, 'Kept 1')
    enroll(student, doomed)
    enroll(student, kept)
    enroll(other_student, kept)
    db_session.add_all([
        ChapterProgress(student_id=student.id, chapter_id=doomed_chapter.id),
        ChapterProgress(student_id=student.id, chapter_id=kept_chapter.id),
        ChapterProgress(student_id=other_student.id, chapter_id=kept_chapter.id),
        Certificate(student_id=student.id, course_id=doomed.id),
        Certificate(student_id=other_student.id, course_id=kept.id),
    ])
    db_session.commit()
    doomed_id, kept_id = doomed.id, kept.id

    response = client.delete(f'{API_PREFIX}/courses/{doomed_id}', headers=auth_headers(mentor))

    assert response.status_code == 200
    assert response.json() == {'message': 'Course deleted successfully'}
    assert db_session.query(Course).filter(Course.id == doomed_id).first() is None
    assert db_session.query(Chapter).filter(Chapter.course_id == doomed_id).count() == 0
    assert db_session.query(Enrollment).filter(Enrollment.course_id == doomed_id).count() == 0
    assert db_session.query(Certificate).filter(Certificate.course_id == doomed_id).count() == 0
    assert db_session.query(ChapterProgress).count() == 2

    assert db_session.query(Chapter).filter(Chapter.course_id == kept_id).count() == 1
    assert db_session.query(Enrollment).filter(Enrollment.course_id == kept_id).count() == 2
    assert db_session.query(Certificate).filter(Certificate.course_id == kept_id).count() == 1
