from flask import Blueprint, current_app, jsonify, request

from models import SqlTopicStore
from services.store import RecordNotFoundError
from services.submissions import SubmissionError, build_submission
from services.tracker import StudyTracker
from utils.logging_utils import get_logger

bp = Blueprint('bp', __name__)

logger = get_logger(__name__)


def _tracker():
    """Tracker for the requested owner, loaded with fresh records"""
    owner = request.args.get('owner') or current_app.config['DEFAULT_OWNER']
    tracker = StudyTracker(
        SqlTopicStore(),
        owner,
        focus_limit=current_app.config['FOCUS_LIMIT'],
        heatmap_days=current_app.config['HEATMAP_DAYS'],
    )
    tracker.refresh()
    return tracker


@bp.errorhandler(SubmissionError)
def handle_submission_error(error):
    return jsonify({'success': False, 'error': str(error)}), 400


@bp.errorhandler(RecordNotFoundError)
def handle_not_found(error):
    return jsonify({'success': False, 'error': f'Topic not found: {error}'}), 404


# ============================================================================
# DASHBOARD
# ============================================================================

@bp.route('/api/dashboard')
def dashboard():
    """Headline metrics, focus list, activity grid and revision log"""
    summary = _tracker().dashboard()
    return jsonify(summary.to_dict())


# ============================================================================
# TOPICS
# ============================================================================

@bp.route('/api/topics')
def topics_list():
    """All topics with their current aura; supports search and sorting"""
    tracker = _tracker()

    search_query = request.args.get('q', '').strip()
    sort_by = request.args.get('sort', 'date')
    order = request.args.get('order', 'desc')

    if search_query:
        tracker.apply_filter(search_query)

    if sort_by == 'urgency':
        tracker.sort_displayed_by_urgency()
    elif sort_by == 'date':
        tracker.sort_displayed_by_date(descending=order != 'asc')

    topics = tracker.annotated(tracker.state.displayed_records)
    return jsonify({'total': len(topics), 'topics': topics})


@bp.route('/api/topics/<topic_id>')
def topic_detail(topic_id):
    tracker = _tracker()
    return jsonify(tracker.annotated([tracker.get(topic_id)])[0])


@bp.route('/api/topics', methods=['POST'])
def submit_topic():
    """Record a study cycle: creates the topic or pushes its history"""
    data = request.get_json(silent=True) or {}

    submission = build_submission(
        name=data.get('name'),
        result_before=data.get('result_before'),
        result_after=data.get('result_after'),
        confidence=data.get('confidence'),
        tags=data.get('tags'),
    )

    tracker = _tracker()
    existing = {record.id for record in tracker.state.all_records}
    record = tracker.submit(submission)
    created = record.id not in existing

    return jsonify({
        'success': True,
        'created': created,
        'topic': tracker.annotated([record])[0],
    }), 201 if created else 200


@bp.route('/api/topics/<topic_id>', methods=['DELETE'])
def delete_topic(topic_id):
    _tracker().delete_topic(topic_id)
    return jsonify({'success': True})


@bp.route('/api/topics/<topic_id>/cycles/<int:index>', methods=['DELETE'])
def delete_cycle(topic_id, index):
    """Delete one past cycle by position (positions shift after a delete)"""
    tracker = _tracker()
    record = tracker.delete_cycle(topic_id, index)
    return jsonify({'success': True, 'topic': tracker.annotated([record])[0]})
