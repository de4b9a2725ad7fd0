from .models import Curriculum


def get_curriculum_for_term(*, program, year_level: str, semester: str, school_year: str):
    return (
        Curriculum.objects.filter(
            program=program,
            year_level=year_level,
            semester=semester,
            school_year=school_year,
            is_active=True,
        )
        .select_related('program')
        .first()
    )


def available_terms(*, program):
    """Active (school_year, year_level, semester) triples for a program, newest school year first."""
    rows = Curriculum.objects.filter(program=program, is_active=True).values_list(
        'school_year', 'year_level', 'semester'
    )
    return sorted(set(rows), key=lambda row: (-int(row[0][:4]), row[1], row[2]))
