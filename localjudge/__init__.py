"""Local judging of competitive programming solutions: batch test cases
compared against expected output, and interactive test cases run against
a tester program.
"""
