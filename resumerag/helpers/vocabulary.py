"""Reference vocabulary for skill extraction.

Bump SKILL_VOCABULARY_VERSION whenever the table changes: stored profiles were
extracted against a specific version and re-extraction may add or drop skills.
"""

SKILL_VOCABULARY_VERSION = "2"

SKILL_VOCABULARY = (
    # languages
    "JavaScript", "TypeScript", "Python", "Java", "C++", "C#", "Ruby", "PHP",
    "Go", "Rust", "Swift", "Kotlin",
    # frameworks
    "React", "Angular", "Vue", "Node.js", "Next.js", "Express", "Django",
    "Flask", "FastAPI", "Spring", "Laravel",
    # data stores
    "PostgreSQL", "MySQL", "MongoDB", "Redis", "Cassandra", "DynamoDB",
    "Elasticsearch", "Snowflake",
    # cloud and delivery
    "AWS", "Azure", "GCP", "Docker", "Kubernetes", "Jenkins", "Git", "CI/CD",
    # data and ML
    "TensorFlow", "PyTorch", "scikit-learn", "Pandas", "NumPy", "Spark",
    "Kafka", "Airflow",
    # frontend
    "HTML", "CSS", "Tailwind", "Bootstrap", "Sass",
    # APIs
    "REST", "GraphQL", "gRPC", "WebSocket",
    # ops
    "Linux", "Bash", "Shell", "Terraform", "Ansible",
    # disciplines
    "Machine Learning", "Deep Learning", "NLP", "Computer Vision",
    "Agile", "Scrum", "DevOps", "MLOps", "DataOps",
)

# Section headers that terminate another section's body.
SECTION_HEADERS = (
    "skills", "skill", "experience", "education",
    "summary", "objective", "profile",
)
