"""Maven coordinates, versions, version ranges and POM files."""