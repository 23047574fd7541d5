"""Unit tests for the section segmenter"""

from bureau.segmenter import iter_sections, segment, segment_all


REPORT = """Report Summary
Account Information
row one
row two
Credit Enquiries
enquiry row
End of Report
"""


def test_segment_runs_to_nearest_end_marker():
    """Test the closest end marker wins, whatever its list position"""
    block = segment(REPORT, "account information", ["End of Report", "Credit Enquiries"])

    assert block.startswith("Account Information")
    assert "row two" in block
    assert "Credit Enquiries" not in block


def test_segment_missing_start_marker():
    """Test an absent section gives an empty string, not an error"""
    assert segment(REPORT, "Employment Information", ["End of Report"]) == ""


def test_segment_without_end_marker_runs_to_end():
    block = segment(REPORT, "Credit Enquiries", ["Disclaimer"])
    assert block.rstrip().endswith("End of Report")


def test_iter_sections_tries_markers_in_order():
    blocks = list(iter_sections(REPORT, ["Account Details", "Account Information"], ["Credit Enquiries"]))
    assert len(blocks) == 1
    assert blocks[0].startswith("Account Information")


def test_iter_sections_empty_when_absent():
    assert list(iter_sections(REPORT, ["Account Details"], [])) == []


def test_segment_all_walks_every_mention():
    """Test a summary mention of a heading does not hide the real section"""
    text = "Credit Enquiries (last 180 days)   2\nAccount Information\nrows\nCredit Enquiries\ntable\n"

    blocks = list(segment_all(text, "credit enquiries", ["Account Information"]))

    assert len(blocks) == 2
    assert blocks[0].startswith("Credit Enquiries (last 180 days)")
    assert "rows" not in blocks[0]
    assert blocks[1] == "Credit Enquiries\ntable\n"
