"""Tests for directory lookups."""

from campusnav.directory.store import (
    create_faculty,
    find_faculty_by_name,
    get_faculty,
    get_faculty_by_person_id,
    list_faculty,
)


def _seed(session) -> None:
    create_faculty(session, "Anil Kumar", faculty_id="FAC_101", department="CSE")
    create_faculty(session, "Priya Sharma", faculty_id="FAC_102", department="ECE")
    create_faculty(session, "Ravi 50% Das", department="CSE")


class TestCreateAndList:
    def test_create_strips_identifiers(self, session):
        faculty = create_faculty(session, "  Anil Kumar ", faculty_id=" FAC_101 ")
        assert faculty.id is not None
        assert faculty.name == "Anil Kumar"
        assert faculty.faculty_id == "FAC_101"

    def test_list_sorted_by_name(self, session):
        _seed(session)
        assert [f.name for f in list_faculty(session)] == [
            "Anil Kumar",
            "Priya Sharma",
            "Ravi 50% Das",
        ]

    def test_list_by_department(self, session):
        _seed(session)
        names = [f.name for f in list_faculty(session, department="cse")]
        assert names == ["Anil Kumar", "Ravi 50% Das"]


class TestLookups:
    def test_get_faculty(self, session):
        faculty = create_faculty(session, "Anil Kumar")
        assert faculty.id is not None
        assert get_faculty(session, faculty.id) is not None
        assert get_faculty(session, 9999) is None

    def test_get_by_person_id(self, session):
        _seed(session)
        faculty = get_faculty_by_person_id(session, "FAC_102")
        assert faculty is not None
        assert faculty.name == "Priya Sharma"
        assert get_faculty_by_person_id(session, "FAC_999") is None

    def test_find_by_name_case_insensitive(self, session):
        _seed(session)
        faculty = find_faculty_by_name(session, "priya")
        assert faculty is not None
        assert faculty.faculty_id == "FAC_102"

    def test_find_by_name_tolerates_extra_whitespace(self, session):
        _seed(session)
        faculty = find_faculty_by_name(session, "  anil    kumar ")
        assert faculty is not None
        assert faculty.name == "Anil Kumar"

    def test_find_by_name_wildcards_are_literal(self, session):
        _seed(session)
        assert find_faculty_by_name(session, "Anil_Kumar") is None
        faculty = find_faculty_by_name(session, "50%")
        assert faculty is not None
        assert faculty.name == "Ravi 50% Das"

    def test_find_by_name_blank(self, session):
        _seed(session)
        assert find_faculty_by_name(session, "   ") is None

    def test_find_by_name_no_match(self, session):
        _seed(session)
        assert find_faculty_by_name(session, "Nobody") is None
