import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so `import core...` works when running pytest from repo root
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))


SCENARIO_CSV = "\n".join(
    [
        "id,date,marker,value,reference_range,provider,lab,source_file",
        "1,2024-07-15,WBC,7.5 x10E3/uL,4.5-11.0 x10E3/uL,Dr. Smith,LabCorp,healow_2024.csv",
        "2,2024-07-15,RBC,5.2 x10E6/uL,4.5-5.9 x10E6/uL,Dr. Smith,LabCorp,healow_2024.csv",
        '44,2025-10-23,"Vitamin B12, quoted ""test""",785 pg/mL,232-1245 pg/mL,Dr. Williams,LabCorp,healow_2025.csv',
        '45,2025-10-23,"Test with, comma",Normal,N/A,Dr. Williams,LabCorp,healow_2025.csv',
    ]
)

ALIAS_CSV = """Test,Result,Doctor,SampleDate
CBC,Normal,Dr. Smith,2024-01-15
Glucose,95,Dr. Jones,2024-02-20"""


@pytest.fixture
def scenario_csv() -> str:
    return SCENARIO_CSV


@pytest.fixture
def alias_csv() -> str:
    return ALIAS_CSV


@pytest.fixture
def scenario_records():
    from core.data import ingest_text

    return ingest_text(SCENARIO_CSV, "scenario.csv").records
