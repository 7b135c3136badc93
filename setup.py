from os import path

from setuptools import find_packages, setup

# Reading the contents of README.md
this_directory = path.abspath(path.dirname(__file__))
with open(path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(name='tschrl',
    version='1.0',
    description='Online Q-learning schedulers for TSCH networks',
    packages=find_packages(exclude=['tests', 'tests.*']),
    long_description=long_description,
    long_description_content_type='text/markdown',
    python_requires='>=3.7',
    install_requires=['numpy', 'simpy'],
    extras_require={
    'test': ['pytest', 'pytest-mock'],
    },
)
