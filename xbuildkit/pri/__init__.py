"""Reading and writing of PRI resource index files."""