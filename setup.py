from setuptools import setup, find_packages

setup(
    name="priority-engine",
    version="0.1.0",
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'SQLAlchemy>=2.0.19',
        'python-dateutil>=2.8.2',
        'python-dotenv>=1.0.0',
        'pydantic>=2.6.1',
        'structlog>=23.1.0',
    ],
    entry_points={
        'console_scripts': [
            'priority-engine=priority_engine.main:main',
        ],
    },
)
