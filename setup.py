from setuptools import setup

setup(
    name='mongotest',
    version='1.0',
    description='Test fixtures for mongod standalone servers, master/slave pairs and peer clusters',
    author='Jordan Halterman',
    author_email='jordan.halterman@gmail.com',
    packages=['mongotest'],
    python_requires='>=3.8',
    install_requires=[
        'colorama',
        'docker',
        'pydantic-settings>=2.0',
        'pymongo>=4.0',
        'terminaltables>=3.1.0'
    ],
    extras_require={
        'test': ['pytest'],
    },
    license="Apache License 2.0",
    classifiers=(
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Natural Language :: English',
        'License :: OSI Approved :: Apache Software License',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
    ),
)
