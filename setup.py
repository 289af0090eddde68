from setuptools import setup, Command
from unittest import TextTestRunner, TestLoader


class TestCommand(Command):
    '''Run test suite using `python setup.py test `'''
    user_options = []

    def initialize_options(self):
        pass

    def finalize_options(self):
        pass

    def run(self):
        '''Run test suite in parse_resource'''
        tests = TestLoader().loadTestsFromNames([
            'parse_resource.tests',
            'parse_resource.test_connection',
            'parse_resource.test_datatypes',
            'parse_resource.test_user',
        ])
        t = TextTestRunner(verbosity=1)
        t.run(tests)


setup(
    name='parse_resource',
    version='0.3.0',
    description='An ActiveRecord style object mapper for Parse.com\'s REST API',
    packages=['parse_resource'],
    install_requires=[],
    python_requires='>=3.6',
    cmdclass={'test': TestCommand},
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Web Environment',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Operating System :: OS Independent',
        "Programming Language :: Python :: 3",
    ]
)
