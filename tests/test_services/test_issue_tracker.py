"""Tests for issue tracking across analyses."""

from findingsync.analyzers.base import Finding, LocationPoint, LocationTrail, TextRange
from findingsync.services.checksum import line_checksum
from findingsync.services.issue_tracker import IssueTracker
from findingsync.services.position_resolver import CharRange, TextSnapshot


def _finding(line, rule="js:S1234", message="Remove this assignment", **kwargs):
    text_range = TextRange(line, 4, line, 14) if line else None
    return Finding(rule_key=rule, severity="MAJOR", message=message, text_range=text_range, **kwargs)


class TestReconcileNew:
    """Test the first analysis of a file."""

    def test_new_findings_get_identity_and_timestamp(self, sample_findbugs, clock):
        """Unmatched findings become new tracked annotations."""
        tracker = IssueTracker(clock=clock)
        snapshot = TextSnapshot.from_text(sample_findbugs)

        tracked = tracker.reconcile([], [_finding(5)], snapshot, "src/Findbugs.js")

        assert len(tracked) == 1
        annotation = tracked[0]
        assert annotation.id
        assert annotation.resource == "src/Findbugs.js"
        assert annotation.text_range == CharRange(78, 88)
        assert annotation.checksum == line_checksum("this.x=x")
        assert annotation.created_at is not None
        assert annotation.line == 5

    def test_unresolvable_position_still_tracks(self, sample_findbugs, clock):
        """A finding beyond the end of the file is tracked without range."""
        tracker = IssueTracker(clock=clock)
        snapshot = TextSnapshot.from_text(sample_findbugs)

        tracked = tracker.reconcile([], [_finding(42)], snapshot)

        assert len(tracked) == 1
        assert tracked[0].text_range is None
        assert tracked[0].checksum is None

    def test_file_level_finding(self, sample_findbugs, clock):
        """Findings without a range have no line, range or checksum."""
        tracker = IssueTracker(clock=clock)

        tracked = tracker.reconcile([], [_finding(None)], TextSnapshot.from_text(sample_findbugs))

        assert tracked[0].line is None
        assert tracked[0].text_range is None

    def test_flows_and_impacts_are_encoded(self, sample_findbugs, clock):
        """Flows and impacts are stored as encoded strings."""
        tracker = IssueTracker(clock=clock)
        flow = LocationTrail([LocationPoint("here", 3, 2, 3, 13)])
        finding = _finding(5, flows=[flow], impacts={"SECURITY": "HIGH"}, clean_code_attribute="LOGICAL")

        tracked = tracker.reconcile([], [finding], TextSnapshot.from_text(sample_findbugs))

        assert tracked[0].flows == "here\u00133\u00132\u00133\u001313"
        assert tracked[0].impacts == "LOGICAL\u0011SECURITY\u0013HIGH"

    def test_positioned_findings_without_snapshot(self, clock):
        """Without content a finding keeps its line but has no range."""
        tracker = IssueTracker(clock=clock)

        tracked = tracker.reconcile([], [_finding(5)], None)

        assert len(tracked) == 1
        assert tracked[0].line == 5
        assert tracked[0].text_range is None
        assert tracked[0].checksum is None

    def test_missing_snapshot_still_matches_by_message(self, sample_findbugs, clock):
        """A file whose content is unavailable keeps its identities."""
        tracker = IssueTracker(clock=clock)
        previous = tracker.reconcile([], [_finding(5)], TextSnapshot.from_text(sample_findbugs))

        tracked = tracker.reconcile(previous, [_finding(5)], None)

        assert tracked[0].id == previous[0].id
        assert tracked[0].created_at == previous[0].created_at

    def test_no_findings_without_snapshot(self, clock):
        """An empty finding set needs no snapshot and drops everything."""
        tracker = IssueTracker(clock=clock)
        previous = tracker.reconcile([], [_finding(None)], None)

        assert tracker.reconcile(previous, [], None) == []

    def test_track_as_unknown(self, sample_findbugs, clock):
        """First-analysis tracking leaves the creation date unknown."""
        tracker = IssueTracker(clock=clock)

        tracked = tracker.track_as_unknown([_finding(5)], TextSnapshot.from_text(sample_findbugs))

        assert tracked[0].created_at is None
        assert tracked[0].creation_millis is None


class TestReconcileMatching:
    """Test matching against previous tracked annotations."""

    def test_stability(self, sample_findbugs, clock):
        """Reconciling unchanged findings keeps every identity and timestamp."""
        tracker = IssueTracker(clock=clock)
        snapshot = TextSnapshot.from_text(sample_findbugs)
        findings = [_finding(5), _finding(3, rule="js:S100", message="Rename"), _finding(None, rule="js:S1451")]

        first = tracker.reconcile([], findings, snapshot)
        second = tracker.reconcile(first, findings, snapshot)

        assert len(second) == len(first)
        assert [a.id for a in second] == [a.id for a in first]
        assert [a.created_at for a in second] == [a.created_at for a in first]

    def test_drift_tolerance(self, sample_findbugs, clock):
        """Blank lines inserted above keep the identity and move the range."""
        tracker = IssueTracker(clock=clock)
        first = tracker.reconcile([], [_finding(5)], TextSnapshot.from_text(sample_findbugs))
        first[0].marker_id = 7

        shifted = TextSnapshot.from_text("\n\n" + sample_findbugs)
        second = tracker.reconcile(first, [_finding(7)], shifted)

        assert second[0].text_range == CharRange(80, 90)
        assert second[0].id == first[0].id
        assert second[0].created_at == first[0].created_at
        assert second[0].marker_id == 7
        assert second[0].line == 7

    def test_match_by_server_key(self, sample_findbugs, clock):
        """Server keys match regardless of rule, message or line."""
        tracker = IssueTracker(clock=clock)
        snapshot = TextSnapshot.from_text(sample_findbugs)
        first = tracker.reconcile([], [_finding(5, server_issue_key="AX-1")], snapshot)

        second = tracker.reconcile(
            first,
            [_finding(2, rule="js:S9999", message="Changed", server_issue_key="AX-1")],
            snapshot,
        )

        assert second[0].id == first[0].id
        assert second[0].message == "Changed"
        assert second[0].rule_key == "js:S9999"

    def test_match_by_message_when_line_changed(self, sample_findbugs, clock):
        """Edited line content falls back to rule and message."""
        tracker = IssueTracker(clock=clock)
        first = tracker.reconcile([], [_finding(5)], TextSnapshot.from_text(sample_findbugs))

        edited = sample_findbugs.replace("this.x = x", "this.x = x + 1")
        second = tracker.reconcile(first, [_finding(5)], TextSnapshot.from_text(edited))

        assert second[0].id == first[0].id
        assert second[0].checksum != first[0].checksum

    def test_closest_line_wins(self, clock):
        """Among identical candidates the nearest previous line pairs first."""
        tracker = IssueTracker(clock=clock)
        text = "\n".join(["x = 1"] * 10)
        snapshot = TextSnapshot.from_text(text)
        first = tracker.reconcile([], [_finding(2), _finding(8)], snapshot)

        second = tracker.reconcile(first, [_finding(7)], snapshot)

        assert second[0].id == first[1].id

    def test_ties_follow_input_order(self, clock):
        """Equal distances pair findings and previous entries in order."""
        tracker = IssueTracker(clock=clock)
        snapshot = TextSnapshot.from_text("\n".join(["x = 1"] * 10))
        first = tracker.reconcile([], [_finding(3), _finding(3)], snapshot)

        second = tracker.reconcile(first, [_finding(3), _finding(3)], snapshot)

        assert [a.id for a in second] == [a.id for a in first]

    def test_unmatched_previous_dropped(self, sample_findbugs, clock):
        """Previous entries without a matching finding disappear."""
        tracker = IssueTracker(clock=clock)
        snapshot = TextSnapshot.from_text(sample_findbugs)
        first = tracker.reconcile([], [_finding(5), _finding(3, rule="js:S100", message="Rename")], snapshot)

        second = tracker.reconcile(first, [_finding(5)], snapshot)

        assert len(second) == 1
        assert second[0].id == first[0].id

    def test_different_rule_never_matches(self, sample_findbugs, clock):
        """Same line and message under another rule is a new annotation."""
        tracker = IssueTracker(clock=clock)
        snapshot = TextSnapshot.from_text(sample_findbugs)
        first = tracker.reconcile([], [_finding(5)], snapshot)

        second = tracker.reconcile(first, [_finding(5, rule="js:S0000")], snapshot)

        assert second[0].id != first[0].id
        assert second[0].created_at > first[0].created_at

    def test_output_preserves_finding_order(self, sample_findbugs, clock):
        """Results follow the order of the findings."""
        tracker = IssueTracker(clock=clock)
        snapshot = TextSnapshot.from_text(sample_findbugs)
        a = _finding(5, rule="js:A")
        b = _finding(2, rule="js:B")
        first = tracker.reconcile([], [a, b], snapshot)

        second = tracker.reconcile(first, [b, a], snapshot)

        assert [t.rule_key for t in second] == ["js:B", "js:A"]
        assert [t.id for t in second] == [first[1].id, first[0].id]

    def test_previous_list_not_mutated(self, sample_findbugs, clock):
        """Updated annotations are new objects."""
        tracker = IssueTracker(clock=clock)
        first = tracker.reconcile([], [_finding(5)], TextSnapshot.from_text(sample_findbugs))

        tracker.reconcile(first, [_finding(7)], TextSnapshot.from_text("\n\n" + sample_findbugs))

        assert first[0].line == 5
        assert first[0].text_range == CharRange(78, 88)
