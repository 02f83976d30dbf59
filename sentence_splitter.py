#!/usr/bin/env python3
"""
Bilingual Splitter CLI 엔트리 포인트
"""
from bilingual_splitter.main import main

if __name__ == "__main__":
    main()
