#!/usr/bin/env python

import setuptools


setuptools.setup(
        name='svm',
        version='0.1',
        license='MIT',
        author='Joshua Downer',
        author_email='joshua.downer@gmail.com',
        description='Interpreter for a 15-bit word virtual machine',
        packages=['svm'],
        scripts=['bin/svm'],
        python_requires='>=3.6',
        extras_require={
            'test': ['pytest'],
            },
        platforms=['Unix'],
        classifiers=[
            'Development Status :: 4 - Beta',
            'Environment :: Console',
            'Intended Audience :: Developers',
            'License :: OSI Approved :: MIT License',
            'Operating System :: Unix',
            'Programming Language :: Python',
            'Programming Language :: Python :: 3',
            'Topic :: System :: Emulators',
            ]
        )
