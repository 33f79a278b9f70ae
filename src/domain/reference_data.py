"""Demo organization, accounts, competencies and rating history for local seeding."""

from __future__ import annotations

DEMO_ORG = {
    "id": "demo-org-456",
    "name": "Demo High School",
    "org_type": "education",
}

EDUCATOR_ID = "demo-educator-123"
TEST_LEARNER_ID = "test-learner-main"
TEST_EMPLOYER_ID = "test-employer-main"

USER_DEFINITIONS = [
    {
        "id": EDUCATOR_ID,
        "email": "educator@demo.edu",
        "display_name": "Jane Educator",
        "roles": ["educator"],
    },
    {
        "id": TEST_LEARNER_ID,
        "email": "demo.student@demo.edu",
        "display_name": "Demo Student",
        "roles": ["learner"],
    },
    {
        "id": TEST_EMPLOYER_ID,
        "email": "test@employer.demo",
        "display_name": "Test Employer",
        "roles": ["master"],
    },
]

COMPETENCY_DEFINITIONS = [
    {
        "id": "comp-python",
        "title": "Python Programming",
        "description": "Ability to write Python code for data analysis and automation",
        "type": "hard",
    },
    {
        "id": "comp-critical-thinking",
        "title": "Critical Thinking",
        "description": "Analyze complex problems and develop reasoned solutions",
        "type": "soft",
    },
    {
        "id": "comp-web-dev",
        "title": "Web Development (HTML/CSS/JS)",
        "description": "Build responsive web applications using modern frameworks",
        "type": "hard",
    },
    {
        "id": "comp-collaboration",
        "title": "Collaboration",
        "description": "Work effectively in teams and communicate clearly",
        "type": "soft",
    },
    {
        "id": "comp-data-analysis",
        "title": "Data Analysis",
        "description": "Interpret data, create visualizations, and draw insights",
        "type": "hard",
    },
]

# (rating id, competency id, rater type, score or None for pending, comment, days ago)
RATING_HISTORY: list[tuple[str, str, str, int | None, str | None, int]] = [
    ("rating-python-self-0", "comp-python", "self", 1, "Complete beginner, just set up", 90),
    ("rating-python-self-1", "comp-python", "self", 2, "Just starting to learn Python basics", 60),
    ("rating-python-mentor-1", "comp-python", "mentor", 2, "Shows promise, needs practice", 55),
    ("rating-python-self-2", "comp-python", "self", 3, "Completed several Python projects", 30),
    ("rating-python-mentor-2", "comp-python", "mentor", 3, "Good progress on advanced topics", 25),
    ("rating-python-master-1", "comp-python", "master", 3, "Solid internship project work", 10),
    ("rating-python-self-3", "comp-python", "self", 4, "Feeling confident with Python now", 7),
    ("rating-python-mentor-3", "comp-python", "mentor", 4, "Ready for production code", 5),
    ("rating-web-self-0", "comp-web-dev", "self", 1, "Started with HTML basics", 70),
    ("rating-web-self-1", "comp-web-dev", "self", 2, "Learning HTML and CSS fundamentals", 45),
    ("rating-web-mentor-1", "comp-web-dev", "mentor", 2, "Good start with layouts and styling", 40),
    ("rating-web-self-2", "comp-web-dev", "self", 3, "Built responsive sites, learning React", 20),
    ("rating-web-mentor-2", "comp-web-dev", "mentor", 3, "Solid fundamentals, eye for design", 15),
    ("rating-web-master-1", "comp-web-dev", "master", 3, "Clean code, responsive designs", 12),
    ("rating-web-self-3", "comp-web-dev", "self", 4, "Completed a full-stack project", 6),
    ("rating-web-master-pending", "comp-web-dev", "master", None, None, 2),
    ("rating-data-self-0", "comp-data-analysis", "self", 1, "Learning basic statistics", 50),
    ("rating-data-self-1", "comp-data-analysis", "self", 2, "Learning pandas and matplotlib", 35),
    ("rating-data-mentor-1", "comp-data-analysis", "mentor", 2, "Focus on statistics", 30),
    ("rating-data-self-2", "comp-data-analysis", "self", 3, "First visualization dashboard", 18),
    ("rating-data-mentor-2", "comp-data-analysis", "mentor", 3, "Strong analysis project", 14),
    ("rating-data-master-pending", "comp-data-analysis", "master", None, None, 1),
    ("rating-critical-self-pending", "comp-critical-thinking", "self", None, None, 3),
    ("rating-critical-self-pending-2", "comp-critical-thinking", "self", None, None, 2),
    ("rating-critical-self-pending-3", "comp-critical-thinking", "self", None, None, 1),
    ("rating-collab-master-pending-1", "comp-collaboration", "master", None, None, 5),
    ("rating-collab-master-pending-2", "comp-collaboration", "master", None, None, 4),
    ("rating-collab-master-pending-3", "comp-collaboration", "master", None, None, 3),
    ("rating-python-master-pending-1", "comp-python", "master", None, None, 2),
    ("rating-python-master-pending-2", "comp-python", "master", None, None, 1),
]

RATER_IDS = {
    "self": TEST_LEARNER_ID,
    "mentor": EDUCATOR_ID,
    "master": TEST_EMPLOYER_ID,
}
