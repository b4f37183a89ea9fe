from datetime import datetime
from typing import List

from pydantic import BaseModel

# Serialized projections of a comparison run, as stored in the report store
# and returned by the API.


# Position of one matched region inside a student's file
class RegionSpan(BaseModel):
    submission_id: str
    file: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int                      # Column just past the last token
    tokens: int                          # Length of the region in tokens


# The same matched run seen from both submissions
class RegionPair(BaseModel):
    first: RegionSpan
    second: RegionSpan


class ComparisonRef(BaseModel):
    lab_id: str
    run_id: str
    index: int                           # Position in the ranked run


# Everything a renderer needs to draw one comparison
class ReportEntry(BaseModel):
    comparison: ComparisonRef
    submission_a: str
    submission_b: str
    similarity: int
    similarity_a: int
    similarity_b: int
    display_name: str                    # e.g. match0.html
    regions: List[RegionPair]


# One line of the ranked comparison list
class ComparisonSummary(BaseModel):
    index: int
    user_id_1: str
    user_id_2: str
    similarity: int
    html_file_name: str
    url: str                             # html_file_name?ts=<run_id>


class RunOverview(BaseModel):
    lab_id: str
    run_id: str
    language: str | None
    minimum_token_match: int
    created_at: datetime
    comparisons: List[ComparisonSummary]
    warnings: List[str]                  # Files skipped because they could not be tokenized
