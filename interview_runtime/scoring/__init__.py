from interview_runtime.scoring.aggregate import compute_aggregate, format_score, runnable_questions, scores_by_question

__all__ = ["compute_aggregate", "format_score", "runnable_questions", "scores_by_question"]
